"""Shared fixtures: a synchronous replay transport and a controllable clock."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

import pytest
import structlog


class ReplayTransport:
    """Synchronous Transport that replays a fixed message sequence.

    Delivery stops as soon as the session closes the subscription, the way
    a real transport would.
    """

    def __init__(self, messages: Iterable[Any] = (), *, keep_delivering: bool = False):
        self.messages = list(messages)
        self.keep_delivering = keep_delivering
        self.requests: list[dict[str, Any]] = []
        self.error_callbacks: list[Callable[[BaseException], None]] = []
        self.close_calls = 0

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    def on_error(self, callback: Callable[[BaseException], None]) -> None:
        self.error_callbacks.append(callback)

    def subscribe(self, request: dict[str, Any], handler: Callable[[Any], None]) -> None:
        self.requests.append(request)
        for message in self.messages:
            if self.closed and not self.keep_delivering:
                break
            handler(message)

    def close(self) -> None:
        self.close_calls += 1

    async def wait_closed(self) -> None:
        return None

    def fault(self, exc: BaseException) -> None:
        for callback in self.error_callbacks:
            callback(exc)


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def replay_transport() -> type[ReplayTransport]:
    return ReplayTransport


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()
