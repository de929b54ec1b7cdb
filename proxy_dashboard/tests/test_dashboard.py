import json
import math

from conftest import exposition

from proxy_dashboard.metrics.dashboard import (
    BYTES_FETCHED_PER_SECOND,
    BYTES_SERVED_PER_SECOND,
    NOT_AVAILABLE,
    REQUESTS_PER_SECOND,
    RESIDENT_MEMORY,
    SERIES,
    MetricsDashboard,
)
from proxy_dashboard.metrics.parser import parse_exposition


def _blocks_by_key(dashboard, families, now_seconds=1100.0):
    return {b.key: b for b in dashboard.stat_blocks(families, now_seconds)}


class TestApply:
    def test_first_snapshot_only_charts_memory(self):
        dashboard = MetricsDashboard(capacity=4, period_seconds=5)
        pushed = dashboard.apply(parse_exposition(exposition(100)), 1000)

        assert set(pushed) == {RESIDENT_MEMORY}
        assert dashboard.total_requests == 100

    def test_second_snapshot_charts_rates(self):
        dashboard = MetricsDashboard(capacity=4, period_seconds=5)
        dashboard.apply(parse_exposition(exposition(100)), 1000)
        pushed = dashboard.apply(parse_exposition(exposition(150, fetched=1500, served=4500)), 6000)

        assert pushed[REQUESTS_PER_SECOND].value == 10.0
        assert pushed[BYTES_FETCHED_PER_SECOND].value == 100.0
        assert pushed[BYTES_SERVED_PER_SECOND].value == 100.0
        assert pushed[RESIDENT_MEMORY].timestamp == 6000

    def test_windows_stay_at_capacity(self):
        dashboard = MetricsDashboard(capacity=4, period_seconds=5)
        for i in range(10):
            dashboard.apply(parse_exposition(exposition(100 + i * 10)), i * 5000)

        payload = dashboard.series_payload()
        assert set(payload) == set(SERIES)
        assert all(len(pairs) == 4 for pairs in payload.values())
        assert payload[REQUESTS_PER_SECOND][-1] == [45000, 2.0]

    def test_zero_memory_is_not_charted(self):
        dashboard = MetricsDashboard(capacity=2)
        pushed = dashboard.apply(parse_exposition("process_resident_memory_bytes 0\n"), 1000)

        assert RESIDENT_MEMORY not in pushed
        assert dashboard.total_requests == 0.0


class TestStatBlocks:
    def test_values_from_full_snapshot(self, sample_text):
        dashboard = MetricsDashboard()
        families = parse_exposition(sample_text)
        dashboard.apply(families, 1000)
        blocks = _blocks_by_key(dashboard, families)

        assert len(blocks) == 10
        assert blocks["uptime"].value == 100.0
        assert blocks["cache_usage"].value == 25.0
        assert blocks["cache_memory"].value == 100.0
        assert blocks["cached_documents"].value == 17
        assert blocks["total_requests"].value == 50
        assert blocks["fetched_documents"].value == 11
        assert blocks["forced_documents"].value == 2
        assert blocks["errors"].value == 7
        assert blocks["virtual_memory"].value == 104857600
        assert blocks["cpu_time"].value == 12.5
        assert blocks["errors"].hint == "Total errors"

    def test_defaults_for_missing_metrics(self):
        blocks = _blocks_by_key(MetricsDashboard(), [])

        assert blocks["uptime"].value == NOT_AVAILABLE
        assert blocks["cache_usage"].value == NOT_AVAILABLE
        assert blocks["cache_memory"].value == NOT_AVAILABLE
        assert blocks["cached_documents"].value == NOT_AVAILABLE
        assert blocks["errors"].value == NOT_AVAILABLE
        assert blocks["fetched_documents"].value == 0
        assert blocks["forced_documents"].value == 0
        assert blocks["total_requests"].value == 0.0


NON_FINITE = (
    "# TYPE api_requests counter\n"
    'api_requests{rpc_method="img_proxy_fetch"} +Inf\n'
    "process_resident_memory_bytes NaN\n"
    "errors +Inf\n"
    "process_virtual_memory_bytes NaN\n"
)


class TestNonFiniteValues:
    def test_nothing_non_finite_reaches_the_windows(self):
        dashboard = MetricsDashboard(capacity=4, period_seconds=5)
        dashboard.apply(parse_exposition(exposition(100)), 1000)

        pushed = dashboard.apply(parse_exposition(NON_FINITE), 6000)

        assert pushed == {}
        assert dashboard.total_requests == 0.0
        payload = dashboard.series_payload()
        assert all(math.isfinite(v) for pairs in payload.values() for pair in pairs for v in pair)
        json.dumps(payload, allow_nan=False)

    def test_non_finite_counter_clears_the_baseline(self):
        dashboard = MetricsDashboard(capacity=4, period_seconds=5)
        dashboard.apply(parse_exposition(exposition(100)), 1000)
        dashboard.apply(parse_exposition(NON_FINITE), 6000)

        pushed = dashboard.apply(parse_exposition(exposition(200)), 11000)
        assert REQUESTS_PER_SECOND not in pushed

        pushed = dashboard.apply(parse_exposition(exposition(250)), 16000)
        assert pushed[REQUESTS_PER_SECOND].value == 10.0

    def test_stat_blocks_spell_out_non_finite_values(self):
        blocks = _blocks_by_key(MetricsDashboard(), parse_exposition(NON_FINITE))

        assert blocks["errors"].value == "+Inf"
        assert blocks["virtual_memory"].value == "NaN"
        json.dumps([b.value for b in blocks.values()], allow_nan=False)
