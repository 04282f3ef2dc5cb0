"""Unit tests for the console progress reporter."""

from __future__ import annotations

import io

from rich.console import Console

from drndump.dump.progress import ProgressEstimator
from drndump.observability.reporter import ProgressReporter, format_progress


def _console() -> tuple[Console, io.StringIO]:
    buffer = io.StringIO()
    return Console(file=buffer, width=200, color_system=None), buffer


class TestProgressReporter:
    def test_reports_percent_and_eta(self, clock):
        estimator = ProgressEstimator(clock=clock)
        estimator.record_forecast(4)
        estimator.record_delivery()
        console, buffer = _console()
        reporter = ProgressReporter(estimator, console, clock=clock)

        reporter({"type": "dump.record"})

        assert "25% done, 3 messages remaining (ETA " in buffer.getvalue()

    def test_throttled_by_interval(self, clock):
        estimator = ProgressEstimator(clock=clock)
        console, buffer = _console()
        reporter = ProgressReporter(estimator, console, interval_seconds=1.0, clock=clock)

        reporter({})
        reporter({})
        clock.advance(0.5)
        reporter({})
        assert buffer.getvalue().count("% done") == 1

        clock.advance(0.5)
        reporter({})
        assert buffer.getvalue().count("% done") == 2

    def test_finish(self, clock):
        estimator = ProgressEstimator(clock=clock)
        estimator.record_delivery()
        estimator.record_delivery()
        console, buffer = _console()
        ProgressReporter(estimator, console, clock=clock).finish()
        assert "Done: 2 messages received" in buffer.getvalue()

    def test_format_progress(self, clock):
        estimator = ProgressEstimator(clock=clock)
        assert format_progress(estimator.snapshot()) == (
            "0% done, 0 messages remaining (ETA 00:00:00)"
        )
