"""Error types raised while running a dump session.

Every error here is terminal for the session that hit it. Nothing in the
package retries; a caller that wants retries wraps the whole session.
"""

from __future__ import annotations

from typing import Any


class DumpError(Exception):
    """Base class for every dump session failure."""


class NilMessageError(DumpError):
    """The transport delivered no message at all (connection lost)."""


class InvalidMessageError(DumpError):
    """The transport delivered something that is not a dump message."""

    def __init__(self, message: str, payload: Any = None) -> None:
        super().__init__(message)
        self.payload = payload


class TransportError(DumpError):
    """A fault reported by the transport collaborator."""

    @classmethod
    def wrap(cls, exc: BaseException) -> TransportError:
        """Build a TransportError carrying ``repr(exc)`` and chained to *exc*."""
        if isinstance(exc, TransportError):
            return exc
        error = cls(repr(exc))
        error.__cause__ = exc
        return error


class EngineError(DumpError):
    """The dump operation itself answered with a non-200 status."""

    def __init__(
        self,
        name: str = "Error",
        message: str = "",
        status_code: int | None = None,
    ) -> None:
        super().__init__(f"{name}: {message}")
        self.name = name
        self.message = message
        self.status_code = status_code

    @classmethod
    def from_body(cls, body: Any, status_code: int | None = None) -> EngineError:
        """Build an EngineError from a ``dump.result``/``dump.error`` body."""
        if not isinstance(body, dict):
            body = {}
        return cls(
            name=str(body.get("name", "Error")),
            message=str(body.get("message", "")),
            status_code=status_code,
        )
