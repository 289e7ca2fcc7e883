"""
Unified Configuration for TopicGraph
Single source of truth for all application settings
"""

import logging
import os
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator


class DebounceConfig(BaseModel):
    """Batching and debounce configuration"""
    min_words_for_analysis: int = Field(default=15, description="Minimum pending words before an analysis is scheduled")
    debounce_seconds: float = Field(default=2.0, description="Quiet period after the last final entry before analyzing")

    @field_validator("min_words_for_analysis")
    @classmethod
    def _positive_threshold(cls, value: int) -> int:
        if value < 1:
            raise ValueError("min_words_for_analysis must be at least 1")
        return value

    @field_validator("debounce_seconds")
    @classmethod
    def _non_negative_delay(cls, value: float) -> float:
        if value < 0:
            raise ValueError("debounce_seconds cannot be negative")
        return value


class OracleClientConfig(BaseModel):
    """Where the classification oracle lives"""
    url: str = Field(default="http://127.0.0.1:8001/api/analyze-topic", description="Oracle endpoint URL")
    timeout_seconds: float = Field(default=30.0, description="Request timeout in seconds")


class LLMConfig(BaseModel):
    """LLM settings used by the oracle endpoint"""
    api_key: Optional[str] = Field(default=None, description="Google API key for Gemini")
    default_model: str = Field(default="gemini-2.0-flash", description="Default model to use")
    max_output_tokens: int = Field(default=1024, description="Maximum output tokens")
    temperature: float = Field(default=0.2, description="Temperature for generation")


class StorageConfig(BaseModel):
    """Snapshot persistence configuration"""
    backend: Literal["file", "memory", "none"] = Field(default="file", description="Durable store implementation")
    directory: Optional[str] = Field(default=None, description="Directory for file snapshots (defaults to app data dir)")
    key: str = Field(default="topic-graph", description="Record key of the persisted snapshot")


class SessionConfig(BaseModel):
    """Session behaviour for overlapping or failed analyses"""
    overlap_policy: Literal["allow", "latest_only"] = Field(
        default="allow",
        description="'allow' applies every response; 'latest_only' drops responses superseded by a newer request",
    )
    retry_failed_analysis: bool = Field(default=False, description="Re-arm the debounce timer after a failed analysis")


class TopicGraphConfig(BaseModel):
    """Main TopicGraph configuration"""
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")

    debounce: DebounceConfig = Field(default_factory=DebounceConfig)
    oracle: OracleClientConfig = Field(default_factory=OracleClientConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level '{value}'")
        return level

    @classmethod
    def from_env(cls) -> "TopicGraphConfig":
        """Load configuration from environment variables and .env files"""
        for env_path in (Path.cwd() / '.env', Path.cwd().parent / '.env'):
            if env_path.exists():
                load_dotenv(env_path)
                break

        env = os.environ
        return cls(
            debug=env.get("DEBUG", "false").lower() == "true",
            log_level=env.get("LOG_LEVEL", "INFO"),
            debounce=DebounceConfig(
                min_words_for_analysis=int(env.get("TOPICGRAPH_MIN_WORDS", "15")),
                debounce_seconds=float(env.get("TOPICGRAPH_DEBOUNCE_SECONDS", "2.0")),
            ),
            oracle=OracleClientConfig(
                url=env.get("TOPICGRAPH_ORACLE_URL", "http://127.0.0.1:8001/api/analyze-topic"),
                timeout_seconds=float(env.get("TOPICGRAPH_ORACLE_TIMEOUT", "30")),
            ),
            llm=LLMConfig(
                api_key=env.get("GOOGLE_API_KEY"),
                default_model=env.get("LLM_DEFAULT_MODEL", "gemini-2.0-flash"),
                max_output_tokens=int(env.get("LLM_MAX_OUTPUT_TOKENS", "1024")),
                temperature=float(env.get("LLM_TEMPERATURE", "0.2")),
            ),
            storage=StorageConfig(
                backend=env.get("TOPICGRAPH_STORAGE", "file"),
                directory=env.get("TOPICGRAPH_STORAGE_DIR"),
                key=env.get("TOPICGRAPH_STORAGE_KEY", "topic-graph"),
            ),
            session=SessionConfig(
                overlap_policy=env.get("TOPICGRAPH_OVERLAP_POLICY", "allow"),
                retry_failed_analysis=env.get("TOPICGRAPH_RETRY_FAILED", "false").lower() == "true",
            ),
        )


# Global configuration instance
_config: Optional[TopicGraphConfig] = None


def get_config() -> TopicGraphConfig:
    """Get the global configuration instance"""
    global _config
    if _config is None:
        _config = TopicGraphConfig.from_env()
    return _config


def reset_config() -> None:
    """Reset configuration (mainly for testing)"""
    global _config
    _config = None
