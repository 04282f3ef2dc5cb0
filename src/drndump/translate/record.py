"""Translate dump.record messages into Groonga ``add`` commands."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

ADD_COMMAND = "add"

# Envelope fields that only make sense on the dump reply channel.
_REPLY_ONLY_FIELDS = ("inReplyTo",)


def add_command(message: Mapping[str, Any]) -> dict[str, Any]:
    """Return a shallow copy of *message* rewritten as an ``add`` command.

    Only envelope fields are touched; the record body is passed through
    as is.
    """
    command = dict(message)
    for key in _REPLY_ONLY_FIELDS:
        command.pop(key, None)
    command["type"] = ADD_COMMAND
    return command
