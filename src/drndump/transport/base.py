"""Transport collaborator protocol.

A transport owns the connection to the cluster and the loop that drives
it.  The dump session only subscribes, receives decoded messages through
its handler, and closes the subscription when it is done.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

# Called once per inbound message.  ``None`` means the connection was lost;
# a TransportError instance means the transport hit a fault.
MessageHandler = Callable[[Any], None]
ErrorCallback = Callable[[BaseException], None]


@runtime_checkable
class Transport(Protocol):
    """Protocol that every dump transport must satisfy."""

    def subscribe(self, request: dict[str, Any], handler: MessageHandler) -> None:
        """Send *request* and call *handler* for every reply."""
        ...

    def close(self) -> None:
        """Terminate the subscription.  Safe to call more than once."""
        ...

    def on_error(self, callback: ErrorCallback) -> None:
        """Register *callback* for transport-level faults."""
        ...
