from pathlib import Path
from typing import Optional

from topicgraph.core.config import StorageConfig
from topicgraph.paths import get_snapshot_dir
from topicgraph.storage.persistence import (
    PersistenceAdapter,
    PersistenceListener,
    SaveResult,
    coerce_snapshot,
    parse_snapshot,
)
from topicgraph.storage.stores import InMemoryStore, JsonFileStore, KeyValueStore


def create_store(config: StorageConfig) -> Optional[KeyValueStore]:
    """Build the durable store named by the configuration"""
    if config.backend == "none":
        return None
    if config.backend == "memory":
        return InMemoryStore()
    directory = Path(config.directory) if config.directory else get_snapshot_dir()
    return JsonFileStore(directory)


__all__ = [
    "InMemoryStore",
    "JsonFileStore",
    "KeyValueStore",
    "PersistenceAdapter",
    "PersistenceListener",
    "SaveResult",
    "coerce_snapshot",
    "create_store",
    "parse_snapshot",
]
