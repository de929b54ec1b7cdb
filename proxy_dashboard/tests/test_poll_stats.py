from proxy_dashboard.observability.metrics import PollStats


def test_snapshot_includes_outcomes_and_latency_percentiles():
    stats = PollStats(latency_window=10)

    stats.observe_poll("ok", 10.0)
    stats.observe_poll("ok", 20.0)
    stats.observe_poll("skipped", 0.0)
    stats.observe_poll("unavailable", 30.0)

    snap = stats.snapshot()

    assert snap["polls_total"] == 4
    assert snap["outcome_counts"] == {"ok": 2, "skipped": 1, "unavailable": 1}
    assert snap["last_outcome"] == "unavailable"
    assert snap["fetch_latency_ms"]["samples"] == 3
    assert snap["fetch_latency_ms"]["p50"] == 20.0
    assert snap["fetch_latency_ms"]["p95"] >= snap["fetch_latency_ms"]["p50"]


def test_empty_snapshot():
    snap = PollStats().snapshot()

    assert snap["polls_total"] == 0
    assert snap["last_outcome"] is None
    assert snap["fetch_latency_ms"]["p99"] == 0.0
