"""Dump session: drives one dump subscription to completion.

The session multiplexes any number of dump workers into one lifecycle:
each ``dump.start`` opens a worker and each ``dump.end`` closes one; the
subscription ends when no worker is left.  Schema and record messages are
translated into Groonga commands and handed to the sink in delivery order.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from enum import StrEnum
from typing import Any

import structlog

from drndump.dump.progress import ProgressEstimator
from drndump.errors import DumpError, EngineError, TransportError
from drndump.protocol.messages import DumpMessage, MessageKind, classify
from drndump.transport.base import Transport
from drndump.translate.record import add_command
from drndump.translate.schema import column_create_command, table_create_command

logger = structlog.get_logger()

CommandSink = Callable[[dict[str, Any]], None]
ProgressCallback = Callable[[Mapping[str, Any]], None]
FinishCallback = Callable[[], None]
ErrorCallback = Callable[[BaseException], None]

DEFAULT_DATASET = "Default"

_TRANSLATORS: dict[MessageKind, Callable[[Mapping[str, Any]], dict[str, Any]]] = {
    MessageKind.TABLE: table_create_command,
    MessageKind.COLUMN: column_create_command,
    MessageKind.RECORD: add_command,
}


class SessionState(StrEnum):
    IDLE = "idle"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


class DumpSession:
    """Orchestrates one dump: subscribe, translate, track progress, close.

    Parameters
    ----------
    transport:
        Collaborator that delivers decoded messages to :meth:`handle`.
    sink:
        Called with every translated command, in arrival order.
    dataset:
        Dataset to dump.
    messages_per_second:
        Optional throttle forwarded verbatim in the dump request.  Also caps
        the throughput used for ETA estimation.
    """

    def __init__(
        self,
        transport: Transport,
        sink: CommandSink,
        *,
        dataset: str = DEFAULT_DATASET,
        messages_per_second: int | None = None,
        progress: ProgressEstimator | None = None,
        on_progress: ProgressCallback | None = None,
        on_finish: FinishCallback | None = None,
        on_error: ErrorCallback | None = None,
    ) -> None:
        self._transport = transport
        self._sink = sink
        self._dataset = dataset
        self._messages_per_second = messages_per_second
        self._progress = progress or ProgressEstimator(messages_per_second)
        self._on_progress = on_progress
        self._on_finish = on_finish
        self._on_error = on_error

        self._state = SessionState.IDLE
        self._active_worker_count = 0
        self._error: BaseException | None = None
        self._error_message: str | None = None

    # -- state ---------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._state in (SessionState.COMPLETED, SessionState.FAILED)

    @property
    def finished(self) -> bool:
        return self._state == SessionState.COMPLETED

    @property
    def failed(self) -> bool:
        return self._state == SessionState.FAILED

    @property
    def active_worker_count(self) -> int:
        return self._active_worker_count

    @property
    def error(self) -> BaseException | None:
        return self._error

    @property
    def error_message(self) -> str | None:
        return self._error_message

    @property
    def progress(self) -> ProgressEstimator:
        return self._progress

    # -- lifecycle -----------------------------------------------------------

    def run_request(self) -> dict[str, Any]:
        """Return the ``dump`` request sent to the cluster."""
        body: dict[str, Any] = {}
        if self._messages_per_second is not None:
            body["messagesPerSecond"] = self._messages_per_second
        return {"type": "dump", "dataset": self._dataset, "body": body}

    def start(self) -> None:
        """Subscribe to the dump.  The transport's loop drives the rest."""
        if self._state != SessionState.IDLE:
            msg = f"Dump session already {self._state}"
            raise RuntimeError(msg)
        self._state = SessionState.ACTIVE
        self._progress.begin()
        self._transport.on_error(self._handle_transport_error)
        self._transport.subscribe(self.run_request(), self.handle)
        logger.info("dump_session.started", dataset=self._dataset)

    def handle(self, payload: Any) -> None:
        """Process one message delivered by the transport."""
        if self._state != SessionState.ACTIVE:
            return

        try:
            message = classify(payload)
        except DumpError as exc:
            self._fail(exc)
            return

        try:
            if self._on_progress is not None:
                self._on_progress(message.raw)
            if message.ignorable:
                logger.debug("dump_session.ignored_message", type=message.type)
                return
            self._dispatch(message)
        except Exception as exc:
            logger.error(
                "dump_session.handler_error", type=message.type, error=str(exc)
            )
            self._fail(exc)

    # -- dispatch ------------------------------------------------------------

    def _dispatch(self, message: DumpMessage) -> None:
        kind = message.kind
        if kind == MessageKind.START:
            self._active_worker_count += 1
            logger.debug(
                "dump_session.worker_started", workers=self._active_worker_count
            )
        elif kind == MessageKind.END:
            self._active_worker_count -= 1
            logger.debug(
                "dump_session.worker_finished", workers=self._active_worker_count
            )
            if self._active_worker_count <= 0:
                self._finish()
        elif kind == MessageKind.FORECAST:
            self._progress.record_forecast(message.n_messages)
        elif kind in _TRANSLATORS:
            command = _TRANSLATORS[kind](message.raw)
            self._sink(command)
            self._progress.record_delivery()
        elif kind in (MessageKind.RESULT, MessageKind.ERROR):
            if not message.succeeded:
                self._fail(EngineError.from_body(message.body, message.status_code))

    def _finish(self) -> None:
        self._transport.close()
        self._state = SessionState.COMPLETED
        logger.info(
            "dump_session.finished",
            dataset=self._dataset,
            received=self._progress.received_count,
            forecasted=self._progress.forecasted_count,
        )
        if self._on_finish is not None:
            self._on_finish()

    def _fail(self, error: BaseException) -> None:
        if self.closed:
            return
        self._transport.close()
        self._state = SessionState.FAILED
        self._error = error
        self._error_message = str(error)
        logger.error(
            "dump_session.failed",
            dataset=self._dataset,
            error=self._error_message,
            error_type=type(error).__name__,
        )
        if self._on_error is not None:
            self._on_error(error)

    def _handle_transport_error(self, exc: BaseException) -> None:
        self._fail(TransportError.wrap(exc))
