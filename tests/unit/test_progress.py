"""Unit tests for the progress / throughput estimator."""

from __future__ import annotations

import pytest

from drndump.dump.progress import (
    DEFAULT_MESSAGES_PER_SECOND,
    MIN_REPORTED_THROUGHPUT,
    ProgressEstimator,
    format_duration,
)


def _deliver(estimator: ProgressEstimator, n: int) -> None:
    for _ in range(n):
        estimator.record_delivery()


class TestCounters:
    def test_initial_state(self, clock):
        estimator = ProgressEstimator(clock=clock)
        assert estimator.forecasted_count == 0
        assert estimator.received_count == 0
        assert estimator.remaining() == 0
        assert estimator.target_rate == DEFAULT_MESSAGES_PER_SECOND

    def test_forecasts_accumulate(self, clock):
        estimator = ProgressEstimator(clock=clock)
        estimator.record_forecast(3)
        estimator.record_forecast(4)
        assert estimator.forecasted_count == 7

    def test_negative_forecast_is_clamped(self, clock):
        estimator = ProgressEstimator(clock=clock)
        estimator.record_forecast(5)
        estimator.record_forecast(-10)
        assert estimator.forecasted_count == 5

    def test_remaining_never_negative(self, clock):
        estimator = ProgressEstimator(clock=clock)
        estimator.record_forecast(2)
        _deliver(estimator, 5)
        assert estimator.remaining() == 0

    def test_target_rate_clamped_to_one(self, clock):
        assert ProgressEstimator(0, clock=clock).target_rate == 1
        assert ProgressEstimator(-5, clock=clock).target_rate == 1

    def test_default_target_rate_only_when_unset(self, clock):
        assert ProgressEstimator(None, clock=clock).target_rate == DEFAULT_MESSAGES_PER_SECOND
        assert ProgressEstimator(250, clock=clock).target_rate == 250


class TestThroughput:
    def test_floor_right_after_start(self, clock):
        estimator = ProgressEstimator(clock=clock)
        assert estimator.throughput() == MIN_REPORTED_THROUGHPUT

    def test_sample_after_one_second(self, clock):
        estimator = ProgressEstimator(clock=clock)
        _deliver(estimator, 10)
        clock.advance(2.0)
        assert estimator.throughput() == pytest.approx(5.0)

    def test_rapid_polling_returns_previous_sample(self, clock):
        estimator = ProgressEstimator(clock=clock)
        _deliver(estimator, 10)
        clock.advance(2.0)
        first = estimator.throughput()
        _deliver(estimator, 100)
        clock.advance(0.5)
        assert estimator.throughput() == first

    def test_begin_restarts_the_clock(self, clock):
        estimator = ProgressEstimator(clock=clock)
        clock.advance(30.0)
        estimator.begin()
        _deliver(estimator, 10)
        clock.advance(2.0)
        assert estimator.throughput() == pytest.approx(5.0)

    def test_resample_uses_delta_since_last_sample(self, clock):
        estimator = ProgressEstimator(clock=clock)
        _deliver(estimator, 10)
        clock.advance(2.0)
        estimator.throughput()
        _deliver(estimator, 5)
        clock.advance(1.0)
        # 5 new messages over 3 seconds since the session started
        assert estimator.throughput() == pytest.approx(5 / 3)

    def test_idle_period_floors_rate(self, clock):
        estimator = ProgressEstimator(clock=clock)
        clock.advance(10.0)
        assert estimator.throughput() == MIN_REPORTED_THROUGHPUT


class TestEta:
    def test_no_division_by_zero_at_start(self, clock):
        estimator = ProgressEstimator(clock=clock)
        estimator.record_forecast(100)
        assert estimator.eta_seconds() == pytest.approx(100 / MIN_REPORTED_THROUGHPUT)

    def test_zero_when_nothing_remains(self, clock):
        estimator = ProgressEstimator(clock=clock)
        assert estimator.eta_seconds() == 0

    def test_throughput_capped_at_target_rate(self, clock):
        estimator = ProgressEstimator(2, clock=clock)
        estimator.record_forecast(20)
        _deliver(estimator, 10)
        clock.advance(1.0)
        # measured 10/s, but the requested throttle is 2/s
        assert estimator.eta_seconds() == pytest.approx(5.0)

    def test_formatted_eta(self, clock):
        estimator = ProgressEstimator(clock=clock)
        estimator.record_forecast(3671)
        _deliver(estimator, 10)
        clock.advance(1.0)
        # 3661 remaining at 10/s -> 366.1 seconds
        assert estimator.formatted_eta() == "00:06:06"


class TestPercentComplete:
    def test_zero_without_forecast(self, clock):
        estimator = ProgressEstimator(clock=clock)
        _deliver(estimator, 3)
        assert estimator.percent_complete() == 0

    @pytest.mark.parametrize(
        ("forecast", "received", "percent"),
        [(3, 1, 33), (3, 3, 100), (100, 29, 29), (100, 57, 57), (7, 0, 0)],
    )
    def test_floor(self, clock, forecast: int, received: int, percent: int):
        estimator = ProgressEstimator(clock=clock)
        estimator.record_forecast(forecast)
        _deliver(estimator, received)
        assert estimator.percent_complete() == percent

    def test_clamped_at_100(self, clock):
        estimator = ProgressEstimator(clock=clock)
        estimator.record_forecast(2)
        _deliver(estimator, 5)
        assert estimator.percent_complete() == 100


class TestSnapshot:
    def test_snapshot_fields(self, clock):
        estimator = ProgressEstimator(clock=clock)
        estimator.record_forecast(4)
        _deliver(estimator, 1)
        snap = estimator.snapshot()
        assert snap.forecasted == 4
        assert snap.received == 1
        assert snap.remaining == 3
        assert snap.percent == 25
        assert snap.throughput == MIN_REPORTED_THROUGHPUT
        assert snap.eta_seconds == pytest.approx(300)
        assert snap.eta == format_duration(snap.eta_seconds)


class TestFormatDuration:
    @pytest.mark.parametrize(
        ("seconds", "text"),
        [(0, "00:00:00"), (59.9, "00:00:59"), (61, "00:01:01"), (3661, "01:01:01")],
    )
    def test_format(self, seconds: float, text: str):
        assert format_duration(seconds) == text
