"""In-process counters for structured-response requests.

Telemetry is an explicit handle owned by a StructuredResponder (or injected
into one and shared). Every mutation happens under a threading.Lock, so the
counters stay exact whether calls interleave on one event loop or run on
several threads. Nothing is persisted.
"""
import threading
import time
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any


class Outcome(StrEnum):
    """Terminal state of one generate_structured() call."""

    PRIMARY_SUCCESS = "primary_success"
    FALLBACK_SUCCESS = "fallback_success"
    FINAL_FALLBACK = "final_fallback"


class Telemetry:
    """Thread-safe request, parse and per-strategy counters.

    Attributes:
        total_requests: Calls started.
        successful_parses: Calls that produced a record from model text.
        fallbacks_used: Calls that needed the fallback attempt or the
            fallback generator.
        strategy_usage: Winning strategy name mapped to its win count.
        average_response_time_ms: Mean elapsed time of completed calls.
        last_reset: When the counters were last cleared.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._started = time.monotonic()
        self.reset()

    def reset(self) -> None:
        """Clear every counter. Uptime is not affected."""
        with self._lock:
            self.total_requests = 0
            self.successful_parses = 0
            self.fallbacks_used = 0
            self.strategy_usage: dict[str, int] = {}
            self.average_response_time_ms = 0.0
            self.last_reset = datetime.now(timezone.utc)
            self._completed = 0

    def record_request(self) -> None:
        with self._lock:
            self.total_requests += 1

    def record_strategy(self, name: str) -> None:
        with self._lock:
            self.strategy_usage[name] = self.strategy_usage.get(name, 0) + 1

    def record_completion(self, outcome: Outcome, elapsed_ms: float) -> None:
        """Record the terminal transition of one call.

        Args:
            outcome: How the call ended.
            elapsed_ms: Wall-clock duration of the call in milliseconds.
        """
        with self._lock:
            if outcome in (Outcome.PRIMARY_SUCCESS, Outcome.FALLBACK_SUCCESS):
                self.successful_parses += 1
            if outcome in (Outcome.FALLBACK_SUCCESS, Outcome.FINAL_FALLBACK):
                self.fallbacks_used += 1
            self._completed += 1
            self.average_response_time_ms += (elapsed_ms - self.average_response_time_ms) / self._completed

    def most_successful_strategy(self) -> str:
        """Name of the strategy with the most wins, or "none"."""
        with self._lock:
            if not self.strategy_usage:
                return "none"
            return max(self.strategy_usage.items(), key=lambda item: item[1])[0]

    @property
    def uptime_seconds(self) -> float:
        return time.monotonic() - self._started

    def snapshot(self) -> dict[str, Any]:
        """Return a consistent copy of the counters plus derived figures."""
        with self._lock:
            rate = self.successful_parses / self.total_requests * 100 if self.total_requests else 0.0
            return {
                "total_requests": self.total_requests,
                "successful_parses": self.successful_parses,
                "fallbacks_used": self.fallbacks_used,
                "strategy_usage": dict(self.strategy_usage),
                "average_response_time_ms": round(self.average_response_time_ms, 2),
                "success_rate": f"{rate:.2f}%",
                "uptime_seconds": round(self.uptime_seconds, 3),
                "last_reset": self.last_reset.isoformat(),
            }
