"""
Classification client for the topic oracle.

Posts the pending text plus a minimal list of prior topics and turns the
reply into an AnalysisResult. The reply may wrap the JSON object in prose.
"""

import json
import logging
from typing import Any, List, Optional, Sequence

import httpx
from pydantic import ValidationError

from topicgraph.core.config import OracleClientConfig
from topicgraph.errors import ParseFailure, TopicGraphError, TransportFailure
from topicgraph.graph.models import AnalysisResult, PriorTopic, TopicNode

logger = logging.getLogger(__name__)


def _balanced_object_end(text: str, start: int) -> Optional[int]:
    """Index one past the brace closing the object opened at ``start``"""
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index + 1
    return None


def extract_json_object(text: str) -> dict[str, Any]:
    """
    Return the first balanced ``{...}`` substring of ``text`` that parses
    as a JSON object.

    Raises:
        ParseFailure: if no such substring exists
    """
    start = text.find("{")
    while start != -1:
        end = _balanced_object_end(text, start)
        if end is None:
            start = text.find("{", start + 1)
            continue
        try:
            parsed = json.loads(text[start:end])
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, dict):
            return parsed
        start = text.find("{", start + 1)
    raise ParseFailure("Could not find a JSON object in oracle response")


class TopicClassifierClient:
    """HTTP client that asks the oracle whether text continues a topic"""

    def __init__(self, config: Optional[OracleClientConfig] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Args:
            config: Oracle endpoint settings
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self.config = config or OracleClientConfig()
        self._transport = transport
        self.total_calls = 0
        self.failed_calls = 0

    @staticmethod
    def build_payload(text: str, prior_nodes: Sequence[TopicNode]) -> dict[str, Any]:
        previous: List[PriorTopic] = [PriorTopic(label=node.label, x=node.x, y=node.y) for node in prior_nodes]
        return {
            "conversationText": text,
            "previousTopics": [topic.model_dump(by_alias=True) for topic in previous],
        }

    async def classify(self, text: str, prior_nodes: Sequence[TopicNode]) -> AnalysisResult:
        """
        Call the oracle and parse its verdict.

        Raises:
            TransportFailure: network error, non-success status or a request
                that could not be encoded
            ParseFailure: no JSON object, or one that is not a valid verdict
        """
        # Fresh client per request so no connection outlives its event loop
        async with httpx.AsyncClient(timeout=self.config.timeout_seconds, transport=self._transport) as client:
            try:
                payload = self.build_payload(text, prior_nodes)
                logger.info(f"Calling topic oracle at {self.config.url} ({len(text)} chars, {len(prior_nodes)} prior topics)")
                response = await client.post(self.config.url, json=payload)
                response.raise_for_status()
            except httpx.HTTPError as e:
                raise TransportFailure(f"Oracle request failed: {e}") from e
            except Exception as e:
                # Payload encoding errors and anything else raised by the transport
                raise TransportFailure(f"Oracle request could not be sent: {e!r}") from e

        data = extract_json_object(response.text)
        try:
            return AnalysisResult.model_validate(data)
        except ValidationError as e:
            raise ParseFailure(f"Oracle returned an invalid verdict: {e}") from e

    async def analyze(self, text: str, prior_nodes: Sequence[TopicNode]) -> Optional[AnalysisResult]:
        """Like classify(), but failures are logged and reported as None"""
        self.total_calls += 1
        try:
            return await self.classify(text, prior_nodes)
        except TopicGraphError as e:
            self.failed_calls += 1
            logger.error(f"{type(e).__name__}: {e}")
            return None

    def get_statistics(self) -> dict[str, Any]:
        return {
            "total_calls": self.total_calls,
            "failed_calls": self.failed_calls,
            "oracle_url": self.config.url,
        }
