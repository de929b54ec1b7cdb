"""In-process statistics about the sampler's own polling."""

from __future__ import annotations

from collections import defaultdict, deque
from threading import Lock


class PollStats:
    def __init__(self, latency_window: int = 720) -> None:
        self._lock = Lock()
        self._polls_total = 0
        self._outcome_counts: dict[str, int] = defaultdict(int)
        self._latencies_ms = deque(maxlen=latency_window)
        self._last_outcome: str | None = None

    def observe_poll(self, outcome: str, duration_ms: float) -> None:
        with self._lock:
            self._polls_total += 1
            self._outcome_counts[outcome] += 1
            self._last_outcome = outcome
            if outcome != "skipped":
                self._latencies_ms.append(float(duration_ms))

    def snapshot(self) -> dict:
        with self._lock:
            sorted_latencies = sorted(self._latencies_ms)

            def percentile(p: float) -> float:
                if not sorted_latencies:
                    return 0.0
                idx = int((len(sorted_latencies) - 1) * p)
                return round(sorted_latencies[idx], 2)

            return {
                "polls_total": self._polls_total,
                "outcome_counts": dict(self._outcome_counts),
                "last_outcome": self._last_outcome,
                "fetch_latency_ms": {
                    "samples": len(sorted_latencies),
                    "p50": percentile(0.50),
                    "p95": percentile(0.95),
                    "p99": percentile(0.99),
                },
            }


poll_stats = PollStats()
