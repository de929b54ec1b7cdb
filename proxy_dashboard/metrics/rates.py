"""Per-second rates from successive cumulative counter values."""

from __future__ import annotations

import enum
import math


class CounterResetPolicy(str, enum.Enum):
    REBASELINE = "rebaseline"  # drop the point, restart from the new value
    CLAMP = "clamp"  # emit 0.0, restart from the new value


class RateClock(str, enum.Enum):
    NOMINAL = "nominal"  # divide by the sampler period
    MEASURED = "measured"  # divide by the elapsed time between observations


class RateDeriver:
    """Tracks the previous value of one counter and turns deltas into rates.

    No rate is produced for the first observation, for an observation following
    the zero baseline, or when the counter is missing from the snapshot (the
    baseline is cleared then). A NaN or infinite value counts as missing.
    """

    def __init__(
        self,
        period_seconds: float,
        reset_policy: CounterResetPolicy | str = CounterResetPolicy.REBASELINE,
        clock: RateClock | str = RateClock.NOMINAL,
    ) -> None:
        if period_seconds <= 0:
            raise ValueError("period_seconds must be positive")
        self.period_seconds = period_seconds
        self.reset_policy = CounterResetPolicy(reset_policy)
        self.clock = RateClock(clock)
        self._previous: float | None = None
        self._previous_ms: int | None = None

    @property
    def baseline(self) -> float | None:
        return self._previous

    def reset(self) -> None:
        self._previous = None
        self._previous_ms = None

    def observe(self, current: float | None, timestamp_ms: int) -> float | None:
        """Record `current` and return the rate since the last call, if any."""
        previous, previous_ms = self._previous, self._previous_ms
        if current is None or not math.isfinite(current):
            self.reset()
            return None
        self._previous, self._previous_ms = current, timestamp_ms

        if previous is None or previous == 0:
            return None
        if current < previous:
            return 0.0 if self.reset_policy is CounterResetPolicy.CLAMP else None
        return (current - previous) / self._divisor(previous_ms, timestamp_ms)

    def _divisor(self, previous_ms: int | None, timestamp_ms: int) -> float:
        if self.clock is RateClock.MEASURED and previous_ms is not None:
            elapsed = (timestamp_ms - previous_ms) / 1000.0
            if elapsed > 0:
                return elapsed
        return self.period_seconds
