"""Fixed-capacity rolling time series for chart display."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Iterator


@dataclass(frozen=True)
class TimePoint:
    timestamp: int  # ms since epoch
    value: float


PLACEHOLDER = TimePoint(0, 0.0)


class SlidingWindow:
    """Keeps the most recent `capacity` points, oldest first.

    The window starts full of zero placeholders, so its length equals its
    capacity from construction on and every push evicts exactly one point.
    """

    def __init__(self, capacity: int = 60) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._points: deque[TimePoint] = deque(
            (PLACEHOLDER for _ in range(capacity)), maxlen=capacity
        )

    @property
    def capacity(self) -> int:
        return self._points.maxlen or 0

    @property
    def latest(self) -> TimePoint:
        return self._points[-1]

    def push(self, point: TimePoint) -> None:
        self._points.append(point)

    def points(self) -> list[TimePoint]:
        return list(self._points)

    def as_pairs(self) -> list[list[float]]:
        """`[timestamp, value]` pairs in the shape the line chart consumes."""
        return [[point.timestamp, point.value] for point in self._points]

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[TimePoint]:
        return iter(self.points())
