"""Pydantic configuration models for the dump client."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field, field_validator


class LogLevel(StrEnum):
    """Supported log levels."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class ConnectionConfig(BaseModel):
    """Where the Droonga engine lives and where its replies come back.

    The engine connects back to ``receiver_host:receiver_port`` to deliver
    dump messages, so the receiver host must be reachable from the engine.
    ``receiver_host=None`` means the local host name; ``receiver_port=0``
    lets the OS pick a free port.
    """

    host: str = "localhost"
    port: int = Field(default=10031, ge=1, le=65535)
    tag: str = Field(default="droonga", min_length=1)
    receiver_host: str | None = None
    receiver_port: int = Field(default=0, ge=0, le=65535)
    connect_timeout_seconds: float = Field(default=10.0, gt=0)

    @field_validator("tag")
    @classmethod
    def validate_tag(cls, v: str) -> str:
        if "." in v or "/" in v:
            msg = f"tag '{v}' must not contain '.' or '/'"
            raise ValueError(msg)
        return v


class DumpConfig(BaseModel):
    """What to dump."""

    dataset: str = Field(default="Default", min_length=1)
    # Forwarded to the engine as-is when set; the engine default applies otherwise.
    messages_per_second: int | None = Field(default=None, ge=1)


class ReporterConfig(BaseModel):
    """Progress reporting on stderr."""

    enabled: bool = False
    interval_seconds: float = Field(default=1.0, gt=0)


class ClientConfig(BaseModel, extra="forbid"):
    """Top-level dump client configuration."""

    connection: ConnectionConfig = ConnectionConfig()
    dump: DumpConfig = DumpConfig()
    progress: ReporterConfig = ReporterConfig()
    log_level: LogLevel = LogLevel.WARNING
