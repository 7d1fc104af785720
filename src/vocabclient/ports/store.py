"""Key-value store port.

The client only uses a store as an opaque cache for the fetched API
description. Implementations must never raise from get/set/remove: a
failure is a cache miss.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class KeyValueStore(ABC):
    """Abstract port for small JSON-serializable key-value persistence."""

    @abstractmethod
    def get(self, key: str, fallback: Any = None) -> Any:
        """Get a value.

        Args:
            key: Store key.
            fallback: Returned when the key is missing or unreadable.

        Returns:
            The stored value or fallback.
        """
        ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store a JSON-serializable value. Failures are ignored."""
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete a key if present. Failures are ignored."""
        ...
