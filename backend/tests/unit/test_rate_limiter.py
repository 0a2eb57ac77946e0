"""
Unit tests for RateLimitTracker.

Covers the daily budget, lazy day/minute rollover, the minute bucket and
unknown-provider handling. Time is driven by a manual clock.
"""

import threading

import pytest

from quotehub.services.market_data.config import ProviderConfig
from quotehub.services.market_data.rate_limiter import (
    RateLimitTracker, DAY_SECONDS, MINUTE_SECONDS,
)


@pytest.fixture
def tracker(clock):
    configs = [
        ProviderConfig(name="ALPHA_VANTAGE", requests_per_day=3, requests_per_minute=2,
                       enforce_minute_limit=True),
        ProviderConfig(name="FINNHUB", requests_per_day=500, requests_per_minute=60),
    ]
    return RateLimitTracker(configs, clock=clock.time)


class TestDailyBudget:

    def test_counts_until_limit_then_denies(self, tracker):
        assert [tracker.record_request("ALPHA_VANTAGE") for _ in range(3)] == [True, True, True]
        assert tracker.get_metrics("ALPHA_VANTAGE").rate_limited is False

        assert tracker.record_request("ALPHA_VANTAGE") is False
        snapshot = tracker.get_metrics("ALPHA_VANTAGE")
        assert snapshot.daily_count == 3
        assert snapshot.rate_limited is True

    def test_day_rollover_resets_counter_and_flag(self, tracker, clock):
        for _ in range(4):
            tracker.record_request("ALPHA_VANTAGE")
        assert tracker.get_metrics("ALPHA_VANTAGE").rate_limited is True

        clock.advance(DAY_SECONDS)

        snapshot = tracker.get_metrics("ALPHA_VANTAGE")
        assert snapshot.daily_count == 0
        assert snapshot.rate_limited is False
        assert tracker.record_request("ALPHA_VANTAGE") is True

    def test_no_rollover_just_before_a_day(self, tracker, clock):
        for _ in range(3):
            tracker.record_request("ALPHA_VANTAGE")
        clock.advance(DAY_SECONDS - 1)
        assert tracker.record_request("ALPHA_VANTAGE") is False

    def test_provider_ids_are_case_insensitive(self, tracker):
        assert tracker.record_request("finnhub") is True
        assert tracker.get_metrics("FINNHUB").daily_count == 1


class TestMinuteBucket:

    def test_minute_bucket_denies_then_refills(self, tracker, clock):
        assert tracker.can_make_request("ALPHA_VANTAGE") is True
        assert tracker.can_make_request("ALPHA_VANTAGE") is True
        assert tracker.can_make_request("ALPHA_VANTAGE") is False

        clock.advance(MINUTE_SECONDS)
        assert tracker.can_make_request("ALPHA_VANTAGE") is True

    def test_minute_slot_does_not_touch_daily_budget(self, tracker):
        tracker.can_make_request("ALPHA_VANTAGE")
        snapshot = tracker.get_metrics("ALPHA_VANTAGE")
        assert snapshot.minute_count == 1
        assert snapshot.daily_count == 0


class TestUnknownProvider:

    def test_unknown_provider_is_always_denied(self, tracker):
        assert tracker.record_request("NOPE") is False
        assert tracker.can_make_request("NOPE") is False

    def test_unknown_provider_snapshot(self, tracker):
        snapshot = tracker.get_metrics("NOPE")
        assert snapshot.daily_limit == 0
        assert snapshot.rate_limited is True
        assert "NOPE" not in tracker.get_all_metrics()


class TestSnapshots:

    def test_usage_percent_and_dict_shape(self, tracker):
        tracker.record_request("FINNHUB")
        data = tracker.get_metrics("FINNHUB").to_dict()

        assert data['daily_request_count'] == 1
        assert data['daily_limit'] == 500
        assert data['daily_usage_percent'] == 0.2
        assert data['rate_limited'] is False

    def test_reset_metrics(self, tracker):
        for _ in range(4):
            tracker.record_request("ALPHA_VANTAGE")
        tracker.reset_metrics("ALPHA_VANTAGE")

        snapshot = tracker.get_metrics("ALPHA_VANTAGE")
        assert snapshot.daily_count == 0
        assert snapshot.rate_limited is False

    def test_all_metrics_lists_configured_providers(self, tracker):
        assert set(tracker.get_all_metrics()) == {"ALPHA_VANTAGE", "FINNHUB"}


class TestConcurrency:

    def test_parallel_requests_never_exceed_daily_limit(self, clock):
        tracker = RateLimitTracker(
            [ProviderConfig(name="ALPHA_VANTAGE", requests_per_day=25, requests_per_minute=5)],
            clock=clock.time,
        )
        barrier = threading.Barrier(50)
        results = []
        results_lock = threading.Lock()

        def worker():
            barrier.wait()
            allowed = tracker.record_request("ALPHA_VANTAGE")
            with results_lock:
                results.append(allowed)

        threads = [threading.Thread(target=worker) for _ in range(50)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(5)

        assert len(results) == 50
        assert results.count(True) == 25
        snapshot = tracker.get_metrics("ALPHA_VANTAGE")
        assert snapshot.daily_count == 25
        assert snapshot.rate_limited is True
