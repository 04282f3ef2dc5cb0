"""Dump protocol message classifier.

Turns one decoded payload handed over by the transport into a
:class:`DumpMessage`.  Message kinds:

- dump.start: a dump worker began emitting
- dump.end: a dump worker is done
- dump.forecast: advisory count of messages a worker will send
- dump.table: table schema
- dump.column: column schema
- dump.record: one stored record
- dump.result: final status of the dump operation
- dump.error: error status of the dump operation

Any other string ``type`` is classified with ``kind=None`` and is meant to
be ignored by the caller.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from drndump.errors import InvalidMessageError, NilMessageError, TransportError

SUCCESS_STATUS_CODE = 200


class MessageKind(StrEnum):
    """Dump protocol message types."""

    START = "dump.start"
    END = "dump.end"
    FORECAST = "dump.forecast"
    TABLE = "dump.table"
    COLUMN = "dump.column"
    RECORD = "dump.record"
    RESULT = "dump.result"
    ERROR = "dump.error"


# Kinds whose body must be a mapping for the message to be usable.
_MAPPING_BODY_KINDS = frozenset(
    {MessageKind.FORECAST, MessageKind.TABLE, MessageKind.COLUMN, MessageKind.RECORD}
)


@dataclass(frozen=True, slots=True)
class DumpMessage:
    """A classified dump protocol message."""

    kind: MessageKind | None  # None: well-formed but unknown type
    type: str
    dataset: str | None
    body: Any
    raw: Mapping[str, Any] = field(repr=False)

    @property
    def ignorable(self) -> bool:
        return self.kind is None

    @property
    def status_code(self) -> int | None:
        """Status code of a result/error message.

        Droonga puts ``statusCode`` on the envelope; older engines put it in
        the body, so that is checked second.
        """
        code = self.raw.get("statusCode")
        if code is None and isinstance(self.body, Mapping):
            code = self.body.get("statusCode")
        return code

    @property
    def succeeded(self) -> bool:
        return self.status_code == SUCCESS_STATUS_CODE

    @property
    def n_messages(self) -> int:
        """Forecasted message count of a ``dump.forecast`` message."""
        if self.kind is not MessageKind.FORECAST:
            return 0
        return int(self.body["nMessages"])


def classify(payload: Any) -> DumpMessage:
    """Classify a decoded transport payload.

    Raises:
        NilMessageError: *payload* is ``None``.
        TransportError: *payload* is a transport fault indicator; it is
            re-raised as is since it already carries its own description.
        InvalidMessageError: *payload* is not a usable dump message.
    """
    if payload is None:
        raise NilMessageError("nil message in dump")
    if isinstance(payload, TransportError):
        raise payload
    if not isinstance(payload, Mapping):
        raise InvalidMessageError("invalid message in dump", payload=payload)

    message_type = payload.get("type")
    if not isinstance(message_type, str):
        raise InvalidMessageError("invalid message in dump", payload=payload)

    try:
        kind: MessageKind | None = MessageKind(message_type)
    except ValueError:
        kind = None

    body = payload.get("body")
    if kind in _MAPPING_BODY_KINDS and not isinstance(body, Mapping):
        msg = f"invalid message in dump: {message_type} without a body"
        raise InvalidMessageError(msg, payload=payload)
    if kind is MessageKind.FORECAST:
        n_messages = body.get("nMessages")
        if not isinstance(n_messages, int) or isinstance(n_messages, bool):
            msg = "invalid message in dump: dump.forecast without nMessages"
            raise InvalidMessageError(msg, payload=payload)

    return DumpMessage(
        kind=kind,
        type=message_type,
        dataset=payload.get("dataset"),
        body=body,
        raw=payload,
    )
