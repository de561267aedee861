"""Telemetry counter tests."""

import threading

from salvage.core.telemetry import Outcome, Telemetry


class TestCompletions:
    def test_outcomes_update_the_right_counters(self, telemetry):
        """Test success and fallback accounting for each outcome."""
        telemetry.record_completion(Outcome.PRIMARY_SUCCESS, 10)
        telemetry.record_completion(Outcome.FALLBACK_SUCCESS, 10)
        telemetry.record_completion(Outcome.FINAL_FALLBACK, 10)
        assert telemetry.successful_parses == 2
        assert telemetry.fallbacks_used == 2

    def test_average_response_time(self, telemetry):
        """Test that the average is the mean over completed calls."""
        for elapsed in (10, 20, 60):
            telemetry.record_completion(Outcome.PRIMARY_SUCCESS, elapsed)
        assert telemetry.average_response_time_ms == 30


class TestStrategies:
    def test_most_successful_strategy(self, telemetry):
        """Test "none" when empty, then the strategy with most wins."""
        assert telemetry.most_successful_strategy() == "none"
        telemetry.record_strategy("markdown")
        telemetry.record_strategy("direct")
        telemetry.record_strategy("direct")
        assert telemetry.most_successful_strategy() == "direct"


class TestSnapshot:
    def test_snapshot_contents(self, telemetry):
        """Test derived figures in the snapshot."""
        telemetry.record_request()
        telemetry.record_request()
        telemetry.record_completion(Outcome.PRIMARY_SUCCESS, 5)
        telemetry.record_strategy("direct")
        snapshot = telemetry.snapshot()
        assert snapshot["total_requests"] == 2
        assert snapshot["success_rate"] == "50.00%"
        assert snapshot["strategy_usage"] == {"direct": 1}
        assert snapshot["uptime_seconds"] >= 0
        assert "last_reset" in snapshot

    def test_snapshot_is_a_copy(self, telemetry):
        """Test that mutating a snapshot does not touch the counters."""
        telemetry.record_strategy("direct")
        telemetry.snapshot()["strategy_usage"]["direct"] = 99
        assert telemetry.strategy_usage == {"direct": 1}

    def test_empty_success_rate(self, telemetry):
        """Test that no requests means a 0% success rate."""
        assert telemetry.snapshot()["success_rate"] == "0.00%"


class TestReset:
    def test_reset_clears_counters(self, telemetry):
        """Test that reset() zeroes every counter and moves last_reset."""
        before = telemetry.last_reset
        telemetry.record_request()
        telemetry.record_strategy("direct")
        telemetry.record_completion(Outcome.FINAL_FALLBACK, 100)
        telemetry.reset()
        assert telemetry.total_requests == 0
        assert telemetry.fallbacks_used == 0
        assert telemetry.strategy_usage == {}
        assert telemetry.average_response_time_ms == 0
        assert telemetry.last_reset >= before


def test_counters_are_exact_across_threads():
    """Test that concurrent increments from many threads are not lost."""
    telemetry = Telemetry()

    def work():
        for _ in range(1000):
            telemetry.record_request()
            telemetry.record_strategy("direct")

    threads = [threading.Thread(target=work) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert telemetry.total_requests == 8000
    assert telemetry.strategy_usage == {"direct": 8000}
