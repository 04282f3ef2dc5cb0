"""Progress and throughput estimation for a dump session."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

# Same default as droonga-engine's dump throttle.
DEFAULT_MESSAGES_PER_SECOND = 10000
MIN_REPORTED_THROUGHPUT = 0.01
SAMPLE_INTERVAL_SECONDS = 1.0

_ONE_MINUTE_IN_SECONDS = 60
_ONE_HOUR_IN_SECONDS = _ONE_MINUTE_IN_SECONDS * 60

Clock = Callable[[], float]


@dataclass(frozen=True, slots=True)
class ProgressSnapshot:
    forecasted: int
    received: int
    remaining: int
    percent: int
    throughput: float
    eta_seconds: float
    eta: str


def format_duration(seconds: float) -> str:
    """Render *seconds* as ``HH:MM:SS``."""
    total = max(int(seconds), 0)
    hours, rest = divmod(total, _ONE_HOUR_IN_SECONDS)
    minutes, secs = divmod(rest, _ONE_MINUTE_IN_SECONDS)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


class ProgressEstimator:
    """Tracks forecasted vs. received dump messages.

    Throughput is sampled at most once per second; polling more often
    returns the previous sample so rapid progress updates do not produce
    noisy rates.  The clock is injectable for deterministic tests.
    """

    def __init__(
        self,
        messages_per_second: int | None = None,
        *,
        clock: Clock = time.monotonic,
    ) -> None:
        if messages_per_second is None:
            messages_per_second = DEFAULT_MESSAGES_PER_SECOND
        self._target_rate = max(messages_per_second, 1)
        self._clock = clock

        self._forecasted_count = 0
        self._received_count = 0
        self.begin()

    def begin(self) -> None:
        """Restart the throughput clock; counters are kept."""
        self._session_start_time = self._clock()
        self._last_sample_time = self._session_start_time
        self._last_sample_received_count = self._received_count
        self._last_sample_rate = MIN_REPORTED_THROUGHPUT

    @property
    def target_rate(self) -> int:
        return self._target_rate

    @property
    def forecasted_count(self) -> int:
        return self._forecasted_count

    @property
    def received_count(self) -> int:
        return self._received_count

    def record_forecast(self, n_messages: int) -> None:
        self._forecasted_count += max(n_messages, 0)

    def record_delivery(self) -> None:
        self._received_count += 1

    def throughput(self) -> float:
        """Recent throughput in messages per second (never below 0.01)."""
        now = self._clock()
        if now - self._last_sample_time < SAMPLE_INTERVAL_SECONDS:
            return self._last_sample_rate

        n_messages = self._received_count - self._last_sample_received_count
        elapsed = now - self._session_start_time
        self._last_sample_time = now
        self._last_sample_received_count = self._received_count
        rate = n_messages / elapsed if elapsed > 0 else 0.0
        self._last_sample_rate = max(rate, MIN_REPORTED_THROUGHPUT)
        return self._last_sample_rate

    def remaining(self) -> int:
        return max(self._forecasted_count - self._received_count, 0)

    def eta_seconds(self) -> float:
        # A short burst above the throttle would otherwise promise too much.
        rate = min(self.throughput(), self._target_rate)
        return self.remaining() / rate

    def formatted_eta(self) -> str:
        return format_duration(self.eta_seconds())

    def percent_complete(self) -> int:
        if self._forecasted_count == 0:
            return 0
        return min(100 * self._received_count // self._forecasted_count, 100)

    def snapshot(self) -> ProgressSnapshot:
        eta_seconds = self.eta_seconds()
        return ProgressSnapshot(
            forecasted=self._forecasted_count,
            received=self._received_count,
            remaining=self.remaining(),
            percent=self.percent_complete(),
            throughput=self._last_sample_rate,
            eta_seconds=eta_seconds,
            eta=format_duration(eta_seconds),
        )
