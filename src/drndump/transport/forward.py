"""ForwardTransport: Transport implementation for the Droonga engine.

The Droonga engine speaks fluentd's *forward* protocol: msgpack-encoded
``[tag, time, record]`` entries over TCP.  A request goes to the engine on
``host:port`` with the tag ``<tag>.message``; replies come back on a
separate connection the engine opens to the address named in the
request's ``replyTo`` field, so the transport runs a small receiver
server for the lifetime of the subscription.

Incoming entries may use any of the forward modes:

- Message        ``[tag, time, record(, option)]``
- Forward        ``[tag, [[time, record], ...](, option)]``
- PackedForward  ``[tag, <msgpack stream of [time, record]>(, option)]``
  (``option.compressed == "gzip"`` is the CompressedPackedForward variant)
"""

from __future__ import annotations

import asyncio
import gzip
import socket
import time
import uuid
from collections.abc import Iterator
from contextlib import suppress
from datetime import UTC, datetime
from typing import Any

import msgpack
import structlog

from drndump.config.models import ConnectionConfig
from drndump.errors import TransportError
from drndump.transport.base import ErrorCallback, MessageHandler

logger = structlog.get_logger()

_READ_CHUNK_SIZE = 64 * 1024


def build_envelope(request: dict[str, Any], *, reply_to: str) -> dict[str, Any]:
    """Wrap *request* in a Droonga message envelope."""
    return {
        "id": uuid.uuid4().hex,
        "date": datetime.now(UTC).isoformat(timespec="milliseconds"),
        "replyTo": reply_to,
        **request,
    }


def pack_forward_entry(tag: str, record: dict[str, Any]) -> bytes:
    """Pack *record* as a Message-mode forward entry."""
    return msgpack.packb([tag, int(time.time()), record], use_bin_type=True)


def iter_forward_records(entry: Any) -> Iterator[Any]:
    """Yield the records carried by one decoded forward entry.

    Raises ValueError for entries that match no forward mode.
    """
    if not isinstance(entry, list | tuple) or len(entry) < 2:
        msg = f"Malformed forward entry: {entry!r}"
        raise ValueError(msg)

    events = entry[1]
    option = entry[2] if len(entry) > 2 and isinstance(entry[2], dict) else {}

    # msgpack decodes arrays as lists; ExtType (EventTime) is a tuple.
    if isinstance(events, list):
        for event in events:
            yield _event_record(event)
    elif isinstance(events, bytes):
        if option.get("compressed") == "gzip":
            events = gzip.decompress(events)
        unpacker = msgpack.Unpacker(raw=False)
        unpacker.feed(events)
        for event in unpacker:
            yield _event_record(event)
    else:
        if len(entry) < 3:
            msg = f"Forward entry has no record: {entry!r}"
            raise ValueError(msg)
        yield entry[2]


def _event_record(event: Any) -> Any:
    if not isinstance(event, list | tuple) or len(event) < 2:
        msg = f"Malformed forward event: {event!r}"
        raise ValueError(msg)
    return event[1]


class ForwardTransport:
    """Subscribes to Droonga over the forward protocol.

    :meth:`subscribe` must be called from a running event loop; the
    subscription is served by tasks on that loop until :meth:`close`.
    Loss of the engine connection while subscribed is reported to the
    handler as ``None``.  Connection and decoding faults go to the
    callbacks registered with :meth:`on_error`, or to the handler as a
    :class:`TransportError` when none are registered.
    """

    def __init__(self, config: ConnectionConfig) -> None:
        self._config = config
        self._receiver_host = config.receiver_host or socket.gethostname()
        self._handler: MessageHandler | None = None
        self._error_callbacks: list[ErrorCallback] = []
        self._server: asyncio.Server | None = None
        self._writer: asyncio.StreamWriter | None = None
        self._reply_writers: set[asyncio.StreamWriter] = set()
        self._task: asyncio.Task[None] | None = None
        self._closed = False
        self._closed_event = asyncio.Event()
        self._receiver_port: int | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def receiver_port(self) -> int | None:
        """Port the reply server is bound to, once listening."""
        return self._receiver_port

    def on_error(self, callback: ErrorCallback) -> None:
        self._error_callbacks.append(callback)

    def subscribe(self, request: dict[str, Any], handler: MessageHandler) -> None:
        if self._task is not None:
            msg = "ForwardTransport supports a single subscription"
            raise RuntimeError(msg)
        self._handler = handler
        self._task = asyncio.get_running_loop().create_task(self._run(request))

    async def wait_closed(self) -> None:
        """Block until the subscription is closed."""
        await self._closed_event.wait()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._writer is not None:
            self._writer.close()
        for writer in list(self._reply_writers):
            writer.close()
        if self._server is not None:
            self._server.close()
        self._closed_event.set()
        logger.info("forward_transport.closed")

    # -- internals -----------------------------------------------------------

    async def _run(self, request: dict[str, Any]) -> None:
        cfg = self._config
        try:
            self._server = await asyncio.start_server(
                self._serve_replies, host=self._receiver_host, port=cfg.receiver_port
            )
            self._receiver_port = self._server.sockets[0].getsockname()[1]
            reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(cfg.host, cfg.port),
                timeout=cfg.connect_timeout_seconds,
            )
        except OSError as exc:
            self._report_error(exc)
            self.close()
            return

        if self._closed:
            self._writer.close()
            return

        reply_to = f"{self._receiver_host}:{self._receiver_port}/{cfg.tag}"
        envelope = build_envelope(request, reply_to=reply_to)
        try:
            self._writer.write(pack_forward_entry(f"{cfg.tag}.message", envelope))
            await self._writer.drain()
        except OSError as exc:
            self._report_error(exc)
            self.close()
            return
        logger.info(
            "forward_transport.subscribed",
            host=cfg.host,
            port=cfg.port,
            reply_to=reply_to,
            type=request.get("type"),
        )

        # The engine never writes on this connection; EOF means it went away.
        with suppress(ConnectionError):
            await reader.read()
        if not self._closed:
            logger.warning("forward_transport.connection_lost", host=cfg.host)
            self._deliver(None)

    async def _serve_replies(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        if self._closed:
            writer.close()
            return
        self._reply_writers.add(writer)
        unpacker = msgpack.Unpacker(raw=False)
        try:
            while not self._closed:
                data = await reader.read(_READ_CHUNK_SIZE)
                if not data:
                    break
                unpacker.feed(data)
                for entry in unpacker:
                    for record in iter_forward_records(entry):
                        if self._closed:
                            return
                        self._deliver(record)
        except (ValueError, msgpack.exceptions.UnpackException, OSError) as exc:
            if not self._closed:
                self._report_error(exc)
        finally:
            self._reply_writers.discard(writer)
            writer.close()

    def _deliver(self, payload: Any) -> None:
        if self._closed or self._handler is None:
            return
        self._handler(payload)

    def _report_error(self, exc: BaseException) -> None:
        logger.error(
            "forward_transport.error", error=str(exc), error_type=type(exc).__name__
        )
        if self._error_callbacks:
            for callback in list(self._error_callbacks):
                callback(exc)
        else:
            self._deliver(TransportError.wrap(exc))
