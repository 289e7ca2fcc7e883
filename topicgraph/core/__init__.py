"""
TopicGraph Core Module
Provides unified configuration
"""

from .config import (
    DebounceConfig,
    LLMConfig,
    OracleClientConfig,
    SessionConfig,
    StorageConfig,
    TopicGraphConfig,
    get_config,
    reset_config,
)

__all__ = [
    'DebounceConfig',
    'LLMConfig',
    'OracleClientConfig',
    'SessionConfig',
    'StorageConfig',
    'TopicGraphConfig',
    'get_config',
    'reset_config',
]
