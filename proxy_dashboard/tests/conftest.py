"""Shared test fixtures for proxy dashboard tests."""

from __future__ import annotations

from typing import Sequence

import pytest

from proxy_dashboard.proxy.base import BuildInfo, ModerationEntry, ProxySource, RawReport
from proxy_dashboard.proxy.rpc import ProxyError

SAMPLE_EXPOSITION = """\
# HELP api_requests Api request by method
# TYPE api_requests counter
api_requests{rpc_method="img_proxy_fetch"} 40
api_requests{rpc_method="img_proxy_describe"} 5
api_requests{rpc_method="img_proxy_report"} 3
api_requests{rpc_method="img_proxy_describe_report"} 2
# HELP cache_metrics Cache statistics
# TYPE cache_metrics gauge
cache_metrics{type="memory",metric="mem_used_bytes"} 25000000
cache_metrics{type="memory",metric="mem_total_bytes"} 100000000
cache_metrics{type="memory",metric="items"} 17
# HELP api_response_time Api response time in ms
# TYPE api_response_time histogram
api_response_time_bucket{method="img_proxy_fetch",le="5"} 1
api_response_time_bucket{method="img_proxy_fetch",le="50"} 4
api_response_time_bucket{method="img_proxy_fetch",le="+Inf"} 5
api_response_time_sum{method="img_proxy_fetch"} 120.5
api_response_time_count{method="img_proxy_fetch"} 5
api_response_time_bucket{method="img_proxy_describe",le="5"} 2
api_response_time_bucket{method="img_proxy_describe",le="50"} 2
api_response_time_bucket{method="img_proxy_describe",le="+Inf"} 3
api_response_time_sum{method="img_proxy_describe"} 80
api_response_time_count{method="img_proxy_describe"} 3
# HELP document Documents by status
# TYPE document counter
document{status="fetched"} 11
document{status="forced"} 2
# HELP traffic Bytes moved
# TYPE traffic counter
traffic{metric="fetched"} 1000
traffic{metric="served"} 4000
# HELP errors Total errors
# TYPE errors counter
errors 7
# HELP process_start_time_seconds Start time of the process since unix epoch in seconds.
# TYPE process_start_time_seconds gauge
process_start_time_seconds 1000
# HELP process_resident_memory_bytes Resident memory size in bytes.
# TYPE process_resident_memory_bytes gauge
process_resident_memory_bytes 52428800
# HELP process_virtual_memory_bytes Virtual memory size in bytes.
# TYPE process_virtual_memory_bytes gauge
process_virtual_memory_bytes 104857600
# HELP process_cpu_seconds_total Total user and system CPU time spent in seconds.
# TYPE process_cpu_seconds_total counter
process_cpu_seconds_total 12.5
"""


def exposition(requests: float, fetched: float = 1000, served: float = 4000) -> str:
    """A minimal snapshot with the counters the rate series read."""
    return (
        "# TYPE api_requests counter\n"
        f'api_requests{{rpc_method="img_proxy_fetch"}} {requests}\n'
        "# TYPE traffic counter\n"
        f'traffic{{metric="fetched"}} {fetched}\n'
        f'traffic{{metric="served"}} {served}\n'
        "process_resident_memory_bytes 2048\n"
    )


class FakeProxySource(ProxySource):
    """Scripted proxy: `metrics` items are returned in order, exceptions raised."""

    def __init__(
        self,
        metrics: Sequence[str | Exception] = (),
        reports: Sequence[dict] = (),
        entries: Sequence[dict] = (),
        info: BuildInfo | None = None,
    ) -> None:
        self.metrics = list(metrics)
        self.reports = list(reports)
        self.entries = list(entries)
        self.info = info or BuildInfo(package_version="1.2.3", git_version="abc123")
        self.metrics_calls = 0
        self.error: ProxyError | None = None

    async def fetch_metrics(self) -> str:
        self.metrics_calls += 1
        item = self.metrics.pop(0) if len(self.metrics) > 1 else self.metrics[0]
        if isinstance(item, Exception):
            raise item
        return item

    async def fetch_info(self) -> BuildInfo:
        if self.error:
            raise self.error
        return self.info

    async def describe_reports(self) -> list[RawReport]:
        if self.error:
            raise self.error
        return [RawReport.from_payload(r) for r in self.reports]

    async def describe(self, urls: Sequence[str] = ("*",)) -> list[ModerationEntry]:
        if self.error:
            raise self.error
        return [ModerationEntry.from_payload(i, e) for i, e in enumerate(self.entries)]


@pytest.fixture
def sample_text() -> str:
    return SAMPLE_EXPOSITION


@pytest.fixture
def raw_reports() -> list[dict]:
    return [
        {"id": "r1", "url": "ipfs://ipfs/A", "categories": ["spam"], "updated_at": "2023-01-01"},
        {"id": "r2", "url": "ipfs://ipfs/B", "categories": ["nsfw"], "updated_at": "2023-01-03"},
        {"id": "r3", "url": "ipfs://ipfs/A", "categories": ["nsfw", "spam"], "updated_at": "2023-01-02"},
    ]
