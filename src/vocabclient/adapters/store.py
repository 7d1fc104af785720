"""Key-value store adapters.

Example:
    >>> from vocabclient.adapters import JsonFileStore
    >>> store = JsonFileStore("~/.cache/vocabclient/store.json")
    >>> store.set("openapi:http://localhost:8000", {"schema": {}, "savedAt": 0})
    >>> store.get("missing", fallback={})
    {}
"""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from vocabclient.ports.store import KeyValueStore

logger = logging.getLogger(__name__)

KEY_PREFIX = "vocab_ui"


def prefixed(key: str, prefix: str = KEY_PREFIX) -> str:
    return f"{prefix}:{key}"


class MemoryStore(KeyValueStore):
    """In-process store. Values are deep-copied in and out."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    def get(self, key: str, fallback: Any = None) -> Any:
        if prefixed(key) not in self._data:
            return fallback
        return copy.deepcopy(self._data[prefixed(key)])

    def set(self, key: str, value: Any) -> None:
        self._data[prefixed(key)] = copy.deepcopy(value)

    def remove(self, key: str) -> None:
        self._data.pop(prefixed(key), None)

    def __len__(self) -> int:
        return len(self._data)


@dataclass
class JsonFileStoreConfig:
    """Configuration for the JSON file store.

    Attributes:
        path: File holding every key as one JSON object.
        create_dirs: Whether to create the parent directory on write.
    """

    path: str = "~/.cache/vocabclient/store.json"
    create_dirs: bool = True


class JsonFileStore(KeyValueStore):
    """Store backed by a single JSON file.

    Unreadable or corrupt files read as empty; write failures are logged
    and ignored.
    """

    def __init__(self, path: str | Path = JsonFileStoreConfig.path, create_dirs: bool = True) -> None:
        self.config = JsonFileStoreConfig(path=str(path), create_dirs=create_dirs)
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, Any]:
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable store {self._path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict[str, Any]) -> None:
        try:
            if self.config.create_dirs:
                self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False)
            tmp_path.replace(self._path)
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Failed to write store {self._path}: {e}")

    def get(self, key: str, fallback: Any = None) -> Any:
        data = self._load()
        return data.get(prefixed(key), fallback)

    def set(self, key: str, value: Any) -> None:
        data = self._load()
        data[prefixed(key)] = value
        self._save(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if data.pop(prefixed(key), None) is not None:
            self._save(data)


__all__ = ["JsonFileStore", "JsonFileStoreConfig", "KEY_PREFIX", "MemoryStore"]
