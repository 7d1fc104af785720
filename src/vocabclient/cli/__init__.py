"""Command-line interface for vocabclient."""

from vocabclient.cli.main import cli, main

__all__ = ["cli", "main"]
