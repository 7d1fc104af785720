"""Ports (interfaces) for collaborators outside the client core."""

from vocabclient.ports.store import KeyValueStore

__all__ = ["KeyValueStore"]
