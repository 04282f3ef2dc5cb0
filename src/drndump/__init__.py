"""Streaming dump client for Droonga clusters."""

__version__ = "1.1.0"
