"""Metrics dashboard — turns snapshots into chart windows and stat blocks."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from proxy_dashboard.config import settings
from proxy_dashboard.metrics.lookup import (
    cache_metric,
    total_api_requests,
    view_family,
    view_nested,
)
from proxy_dashboard.metrics.parser import MetricFamily, json_number
from proxy_dashboard.metrics.rates import CounterResetPolicy, RateClock, RateDeriver
from proxy_dashboard.metrics.window import SlidingWindow, TimePoint

NOT_AVAILABLE = "Not available"

REQUESTS_PER_SECOND = "requests_per_second"
RESIDENT_MEMORY = "resident_memory"
BYTES_FETCHED_PER_SECOND = "bytes_fetched_per_second"
BYTES_SERVED_PER_SECOND = "bytes_served_per_second"

SERIES = (
    REQUESTS_PER_SECOND,
    RESIDENT_MEMORY,
    BYTES_FETCHED_PER_SECOND,
    BYTES_SERVED_PER_SECOND,
)


@dataclass
class StatBlock:
    key: str
    title: str
    value: float | str
    units: str | None
    hint: str


def _finite(value: float | None) -> float | None:
    if value is None or not math.isfinite(value):
        return None
    return value


class MetricsDashboard:
    """Owns the series windows and counter baselines for one dashboard.

    Only the sampler feeds snapshots in; everything else reads.
    """

    def __init__(
        self,
        capacity: int = 60,
        period_seconds: float = 5.0,
        reset_policy: CounterResetPolicy | str = CounterResetPolicy.REBASELINE,
        rate_clock: RateClock | str = RateClock.NOMINAL,
    ) -> None:
        self.windows: dict[str, SlidingWindow] = {name: SlidingWindow(capacity) for name in SERIES}
        self._requests = RateDeriver(period_seconds, reset_policy, rate_clock)
        self._fetched = RateDeriver(period_seconds, reset_policy, rate_clock)
        self._served = RateDeriver(period_seconds, reset_policy, rate_clock)
        self.total_requests: float = 0.0

    @classmethod
    def from_settings(cls) -> "MetricsDashboard":
        return cls(
            capacity=settings.window_capacity,
            period_seconds=settings.poll_interval_seconds,
            reset_policy=settings.counter_reset_policy,
            rate_clock=settings.rate_clock,
        )

    def apply(self, families: Sequence[MetricFamily], timestamp_ms: int) -> dict[str, TimePoint]:
        """Feed one snapshot; returns the points pushed this cycle by series name."""
        pushed: dict[str, TimePoint] = {}

        def push(series: str, value: float | None) -> None:
            if value is None:
                return
            point = TimePoint(timestamp_ms, float(value))
            self.windows[series].push(point)
            pushed[series] = point

        total = total_api_requests(families)
        push(REQUESTS_PER_SECOND, self._requests.observe(total, timestamp_ms))

        # Zero, missing or non-finite resident memory is not charted.
        memory = _finite(view_family(families, "process_resident_memory_bytes").value)
        if memory:
            push(RESIDENT_MEMORY, memory)

        fetched = view_nested(families, "traffic", "metric", "fetched").value
        push(BYTES_FETCHED_PER_SECOND, self._fetched.observe(fetched, timestamp_ms))
        served = view_nested(families, "traffic", "metric", "served").value
        push(BYTES_SERVED_PER_SECOND, self._served.observe(served, timestamp_ms))

        self.total_requests = _finite(total) or 0.0
        return pushed

    def series_payload(self) -> dict[str, list[list[float]]]:
        return {name: window.as_pairs() for name, window in self.windows.items()}

    def stat_blocks(self, families: Sequence[MetricFamily], now_seconds: float) -> list[StatBlock]:
        """Single-value tiles, each with its own default for a missing metric."""
        start_time = view_family(families, "process_start_time_seconds")
        used = cache_metric(families, "mem_used_bytes")
        total = cache_metric(families, "mem_total_bytes")
        errors = view_family(families, "errors")
        virtual_memory = view_family(families, "process_virtual_memory_bytes")
        cpu_time = view_family(families, "process_cpu_seconds_total")

        uptime: float | str = NOT_AVAILABLE
        if start_time.available:
            uptime = round(now_seconds - start_time.value, 3)

        cache_usage: float | str = NOT_AVAILABLE
        if used.available and total.value:
            cache_usage = round(used.value / total.value * 100, 3)

        cache_mem: float | str = NOT_AVAILABLE
        if total.available:
            cache_mem = round(total.value / 1e6, 3)

        blocks = [
            StatBlock("uptime", "Uptime", uptime, "Seconds", start_time.help_or("Process uptime")),
            StatBlock("cache_usage", "Cache Usage", cache_usage, "%", "Percentage of cache memory used"),
            StatBlock("cache_memory", "Cache Mem", cache_mem, "Mb", "Total cache memory"),
            StatBlock(
                "cached_documents",
                "Cached Documents",
                cache_metric(families, "items").value_or(NOT_AVAILABLE),
                None,
                "Number of items in cache",
            ),
            StatBlock(
                "total_requests",
                "Total Requests",
                self.total_requests,
                None,
                "Total number of requests made",
            ),
            StatBlock(
                "fetched_documents",
                "Fetched (Docs)",
                view_nested(families, "document", "status", "fetched").value_or(0),
                None,
                "Number of unforced fetches",
            ),
            StatBlock(
                "forced_documents",
                "Forced (Docs)",
                view_nested(families, "document", "status", "forced").value_or(0),
                None,
                "Number of forced fetches",
            ),
            StatBlock("errors", "Errors", errors.value_or(NOT_AVAILABLE), None, errors.help_or("Total errors")),
            StatBlock(
                "virtual_memory",
                "Virtual Memory",
                virtual_memory.value_or(NOT_AVAILABLE),
                "Bytes",
                virtual_memory.help_or("Virtual memory size"),
            ),
            StatBlock(
                "cpu_time",
                "Total CPU Time",
                cpu_time.value_or(NOT_AVAILABLE),
                "Seconds",
                cpu_time.help_or("Total CPU time"),
            ),
        ]
        for block in blocks:
            block.value = json_number(block.value)
        return blocks
