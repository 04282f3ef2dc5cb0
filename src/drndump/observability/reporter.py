"""Human-readable dump progress on a rich console."""

from __future__ import annotations

import time
from collections.abc import Mapping
from typing import Any

from rich.console import Console

from drndump.dump.progress import Clock, ProgressEstimator, ProgressSnapshot


def format_progress(snapshot: ProgressSnapshot) -> str:
    return (
        f"{snapshot.percent}% done, "
        f"{snapshot.remaining} messages remaining (ETA {snapshot.eta})"
    )


class ProgressReporter:
    """Prints dump progress at most once per *interval_seconds*.

    Instances are callable with a raw message so they can be passed to
    :class:`~drndump.dump.session.DumpSession` as ``on_progress``.
    """

    def __init__(
        self,
        estimator: ProgressEstimator,
        console: Console | None = None,
        *,
        interval_seconds: float = 1.0,
        clock: Clock = time.monotonic,
    ) -> None:
        self._estimator = estimator
        self._console = console or Console(stderr=True)
        self._interval = interval_seconds
        self._clock = clock
        self._last_report: float | None = None

    def __call__(self, message: Mapping[str, Any]) -> None:
        now = self._clock()
        if self._last_report is not None and now - self._last_report < self._interval:
            return
        self._last_report = now
        self.report()

    def report(self) -> ProgressSnapshot:
        snapshot = self._estimator.snapshot()
        self._console.print(format_progress(snapshot), highlight=False)
        return snapshot

    def finish(self) -> None:
        snapshot = self._estimator.snapshot()
        self._console.print(
            f"[green]Done[/green]: {snapshot.received} messages received",
            highlight=False,
        )
