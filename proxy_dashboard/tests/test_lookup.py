from proxy_dashboard.metrics.lookup import (
    MetricView,
    api_requests,
    cache_metric,
    find_family,
    find_nested,
    response_time_buckets,
    total_api_requests,
    view_family,
)
from proxy_dashboard.metrics.parser import MetricFamily, MetricSample, parse_exposition


def test_find_family_returns_first_match():
    families = [
        MetricFamily("dup", help="first"),
        MetricFamily("other"),
        MetricFamily("dup", help="second"),
    ]

    assert find_family(families, "dup").help == "first"
    assert find_family(families, "missing") is None


def test_find_nested_by_label(sample_text):
    families = parse_exposition(sample_text)

    sample = find_nested(families, "cache_metrics", "metric", "items")
    assert sample.value == 17
    assert find_nested(families, "cache_metrics", "metric", "nope") is None
    assert find_nested(families, "no_family", "metric", "items") is None


def test_metric_view_defaults():
    missing = MetricView.missing()
    assert not missing.available
    assert missing.value_or("Not available") == "Not available"
    assert missing.help_or("fallback") == "fallback"

    zero = MetricView(0.0, "help text")
    assert zero.available
    assert zero.value_or(5) == 0.0
    assert zero.help_or("fallback") == "help text"


def test_view_family_uses_first_sample():
    families = [MetricFamily("g", samples=[MetricSample(value=3), MetricSample(value=9)])]
    assert view_family(families, "g").value == 3
    assert not view_family([MetricFamily("empty")], "empty").available


def test_proxy_accessors(sample_text):
    families = parse_exposition(sample_text)

    assert api_requests(families, "img_proxy_report").value == 3
    assert cache_metric(families, "mem_total_bytes").value == 100000000
    assert total_api_requests(families) == 50


def test_total_requests_missing_methods_count_as_zero():
    text = '# TYPE api_requests counter\napi_requests{rpc_method="img_proxy_fetch"} 8\n'
    assert total_api_requests(parse_exposition(text)) == 8
    assert total_api_requests(parse_exposition("errors 1\n")) is None


def test_response_time_buckets_are_per_bucket_sums(sample_text):
    buckets = response_time_buckets(parse_exposition(sample_text))

    # fetch: 1, 4, 5 and describe: 2, 2, 3 cumulative
    assert buckets == [("5", 3.0), ("50", 3.0), ("+Inf", 2.0)]


def test_response_time_buckets_need_a_histogram():
    assert response_time_buckets([]) == []
    assert response_time_buckets(parse_exposition("api_response_time 4\n")) == []
