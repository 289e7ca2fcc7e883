"""
Durable key-value stores for graph snapshots.

Every operation may fail independently with PersistenceFailure.
"""

import json
import logging
import os
import re
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional, Union

from topicgraph.errors import PersistenceFailure

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Single string-keyed records of JSON-serializable data"""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Stored value, or None when the key has no record"""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        ...


class InMemoryStore(KeyValueStore):
    """Process-local store, values are kept as JSON text like the file store"""

    def __init__(self) -> None:
        self._records: Dict[str, str] = {}

    def get(self, key: str) -> Optional[Any]:
        raw = self._records.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        try:
            self._records[key] = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise PersistenceFailure(f"Value for '{key}' is not serializable: {e}") from e

    def remove(self, key: str) -> None:
        self._records.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._records


class JsonFileStore(KeyValueStore):
    """One ``<key>.json`` file per record under ``directory``"""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def _path_for(self, key: str) -> Path:
        safe_key = re.sub(r'[<>:"/\\|?*\s]', '_', key)
        return self.directory / f"{safe_key}.json"

    def get(self, key: str) -> Optional[Any]:
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceFailure(f"Failed to read {path}: {e}") from e

    def set(self, key: str, value: Any) -> None:
        path = self._path_for(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            # Write to a sibling temp file first so a crash never leaves half a snapshot
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{path.stem}-", suffix=".tmp")
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(value, f, indent=2)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceFailure(f"Failed to write {path}: {e}") from e
        logger.debug(f"Snapshot written to {path}")

    def remove(self, key: str) -> None:
        path = self._path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceFailure(f"Failed to remove {path}: {e}") from e
