"""Configuration management for vocabclient."""

from vocabclient.config.settings import ClientSettings, load_settings

__all__ = ["ClientSettings", "load_settings"]
