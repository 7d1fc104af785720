"""Adapters implementing the vocabclient ports."""

from vocabclient.adapters.store import JsonFileStore, JsonFileStoreConfig, MemoryStore

__all__ = ["JsonFileStore", "JsonFileStoreConfig", "MemoryStore"]
