"""
Tests for HostStatistics.
"""

import threading
from dataclasses import FrozenInstanceError
from datetime import datetime

import pytest

from network_monitor.core.host_statistics import HostStatistics, WINDOW_CAPACITY


class TestCounters:
    """Lifetime counters and availability."""

    def test_empty_statistics(self):
        stats = HostStatistics("router")

        assert stats.total_checks == 0
        assert stats.failures == 0
        assert stats.availability_percent == 100.0
        assert stats.mean_response_time() == 0.0
        assert stats.stability() == 100.0
        assert stats.last_check_at is None
        assert stats.last_failure_at is None

    def test_availability_after_mixed_checks(self):
        stats = HostStatistics("router")
        stats.record_check(True, 10)
        stats.record_check(False, 2000)
        stats.record_check(False, 2000)
        stats.record_check(False, 2000)

        assert stats.total_checks == 4
        assert stats.failures == 3
        assert stats.availability_percent == 25.0
        assert stats.last_response_time_ms == 2000

    def test_failure_timestamps_use_clock(self):
        moment = datetime(2024, 5, 1, 8, 30, 0)
        stats = HostStatistics("nas", clock=lambda: moment)
        stats.record_check(True, 5)
        stats.record_check(False, 7)

        assert stats.last_check_at == moment
        assert stats.last_failure_at == moment
        assert stats.failure_history == [moment]

    def test_failure_history_is_a_copy(self):
        stats = HostStatistics("nas")
        stats.record_check(False, 1)

        history = stats.failure_history
        history.clear()

        assert len(stats.failure_history) == 1

    def test_concurrent_recording_keeps_counts(self):
        stats = HostStatistics("busy")

        def record():
            for i in range(250):
                stats.record_check(i % 2 == 0, i)

        threads = [threading.Thread(target=record) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert stats.total_checks == 1000
        assert stats.failures == 500
        assert stats.availability_percent == 50.0
        assert len(stats.response_times) == WINDOW_CAPACITY


class TestWindows:
    """Bounded response-time and state windows."""

    def test_oldest_entry_evicted_after_capacity(self):
        stats = HostStatistics("web")
        for i in range(WINDOW_CAPACITY + 1):
            stats.record_check(True, i)

        assert stats.total_checks == WINDOW_CAPACITY + 1
        assert len(stats.response_times) == WINDOW_CAPACITY
        assert len(stats.recent_states) == WINDOW_CAPACITY
        assert stats.response_times[0] == 1
        assert stats.response_times[-1] == WINDOW_CAPACITY

    def test_mean_min_max(self):
        stats = HostStatistics("web")
        for value in (10, 20, 30, 40):
            stats.record_check(True, value)

        assert stats.mean_response_time() == 25.0
        assert stats.min_response_time() == 10.0
        assert stats.max_response_time() == 40.0

    def test_percentile(self):
        stats = HostStatistics("web")
        for value in range(10, 101, 10):
            stats.record_check(True, value)

        assert stats.percentile_response_time(50) == pytest.approx(55.0)
        assert stats.percentile_response_time(100) == 100.0

    def test_percentile_out_of_range(self):
        stats = HostStatistics("web")
        with pytest.raises(ValueError):
            stats.percentile_response_time(101)

    def test_stability_counts_transitions(self):
        stats = HostStatistics("flaky")
        for success in (True, False, True, False):
            stats.record_check(success, 1)

        # three transitions over four entries
        assert stats.stability() == pytest.approx(25.0)

    def test_stability_steady_and_short_windows(self):
        single = HostStatistics("one")
        single.record_check(False, 1)
        steady = HostStatistics("steady")
        for _ in range(3):
            steady.record_check(True, 1)

        assert single.stability() == 100.0
        assert steady.stability() == 100.0


class TestSnapshot:
    """Immutable snapshots handed to readers."""

    def test_snapshot_matches_statistics(self):
        stats = HostStatistics("db")
        stats.record_check(True, 12)
        stats.record_check(False, 2000)

        snap = stats.snapshot()

        assert snap.device_id == "db"
        assert snap.total_checks == 2
        assert snap.failures == 1
        assert snap.availability_percent == 50.0
        assert snap.response_times == (12, 2000)
        assert snap.recent_states == (True, False)
        assert snap.last_response_time_ms == 2000

    def test_snapshot_is_frozen_and_detached(self):
        stats = HostStatistics("db")
        stats.record_check(True, 12)
        snap = stats.snapshot()

        with pytest.raises(FrozenInstanceError):
            snap.total_checks = 5

        stats.record_check(True, 13)
        assert snap.total_checks == 1
        assert snap.response_times == (12,)

    def test_summary(self):
        stats = HostStatistics("printer")
        stats.record_check(True, 10)
        stats.record_check(False, 30)

        summary = stats.summary()

        assert "Host: printer" in summary
        assert "Availability: 50.00%" in summary
        assert "Failures: 1" in summary
