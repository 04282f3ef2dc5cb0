"""Dump message to Groonga command translators."""

from __future__ import annotations

from drndump.translate.record import add_command
from drndump.translate.schema import column_create_command, table_create_command

__all__ = ["add_command", "column_create_command", "table_create_command"]
