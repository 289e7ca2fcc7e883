"""
Topic oracle service
Runs the classification prompt against Gemini and returns the raw verdict
"""

import logging
import time
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence

from topicgraph.core.config import LLMConfig
from topicgraph.errors import TransportFailure
from topicgraph.oracle.client import extract_json_object
from topicgraph.oracle.prompts import build_topic_prompt

logger = logging.getLogger(__name__)

GenerateFn = Callable[[str], Awaitable[str]]


class TopicOracle:
    """Server side of the classification exchange"""

    def __init__(self, config: LLMConfig, generate: Optional[GenerateFn] = None):
        """
        Args:
            config: LLM settings
            generate: Optional prompt -> reply coroutine replacing the Gemini call
        """
        self.config = config
        self._generate = generate
        self._client = None

    def _get_client(self) -> Any:
        if self._client is None:
            if not self.config.api_key:
                raise ValueError(
                    "GOOGLE_API_KEY environment variable is required to run the topic oracle. "
                    "Please set it in your environment or .env file."
                )
            from google import genai
            self._client = genai.Client(api_key=self.config.api_key)
            logger.info("Google GenAI client initialized")
        return self._client

    async def _call_llm(self, prompt: str) -> str:
        if self._generate is not None:
            return await self._generate(prompt)

        client = self._get_client()
        start_time = time.time()
        try:
            response = await client.aio.models.generate_content(
                model=self.config.default_model,
                contents=prompt,
                config={
                    "max_output_tokens": self.config.max_output_tokens,
                    "temperature": self.config.temperature,
                },
            )
        except Exception as e:
            raise TransportFailure(f"LLM call failed: {e}") from e

        elapsed_ms = (time.time() - start_time) * 1000
        text = getattr(response, "text", None)
        if not text:
            raise TransportFailure("No text content in LLM response")
        logger.info(f"LLM response received ({elapsed_ms:.1f}ms, {len(text)} chars)")
        return text

    async def analyze(self, conversation_text: str, previous_topics: Sequence[Mapping[str, Any]]) -> dict[str, Any]:
        """
        Classify ``conversation_text`` against ``previous_topics``.

        Raises:
            TransportFailure: the LLM call failed
            ParseFailure: the reply held no JSON object
        """
        prompt = build_topic_prompt(conversation_text, previous_topics)
        reply = await self._call_llm(prompt)
        return extract_json_object(reply)
