"""Linear-scan accessors over a parsed metric family list.

Lookups never raise on a miss; they return ``None``. `MetricView` is the one
place a caller turns a miss into a display default.
"""

from __future__ import annotations

from typing import Iterable, Sequence, TypeVar

from proxy_dashboard.metrics.parser import MetricFamily, MetricKind, MetricSample

T = TypeVar("T")

# RPC methods whose `api_requests` counters add up to the request total.
API_METHODS = (
    "img_proxy_fetch",
    "img_proxy_describe",
    "img_proxy_report",
    "img_proxy_describe_report",
)


def find_family(families: Iterable[MetricFamily], name: str) -> MetricFamily | None:
    for family in families:
        if family.name == name:
            return family
    return None


def find_sample_by_label(
    family: MetricFamily | None, label_name: str, label_value: str
) -> MetricSample | None:
    if family is None:
        return None
    for sample in family.samples:
        if sample.labels.get(label_name) == label_value:
            return sample
    return None


def find_nested(
    families: Iterable[MetricFamily], name: str, label_name: str, label_value: str
) -> MetricSample | None:
    return find_sample_by_label(find_family(families, name), label_name, label_value)


class MetricView:
    """A possibly-missing metric value with explicit defaults."""

    __slots__ = ("_value", "_help")

    def __init__(self, value: float | None = None, help: str | None = None) -> None:
        self._value = value
        self._help = help

    @classmethod
    def missing(cls) -> "MetricView":
        return cls()

    @property
    def available(self) -> bool:
        return self._value is not None

    @property
    def value(self) -> float | None:
        return self._value

    def value_or(self, default: T) -> float | T:
        return default if self._value is None else self._value

    def help_or(self, default: str) -> str:
        return self._help or default

    def __repr__(self) -> str:
        return f"MetricView(value={self._value!r})"


def view_family(families: Sequence[MetricFamily], name: str) -> MetricView:
    """View the first sample of family `name`."""
    family = find_family(families, name)
    if family is None:
        return MetricView.missing()
    value = family.samples[0].value if family.samples else None
    return MetricView(value, family.help)


def view_nested(
    families: Sequence[MetricFamily], name: str, label_name: str, label_value: str
) -> MetricView:
    family = find_family(families, name)
    sample = find_sample_by_label(family, label_name, label_value)
    if sample is None:
        return MetricView(None, family.help if family else None)
    return MetricView(sample.value, family.help)


# ─── Proxy-specific accessors ────────────────────────────────────


def api_requests(families: Sequence[MetricFamily], method: str) -> MetricView:
    return view_nested(families, "api_requests", "rpc_method", method)


def total_api_requests(families: Sequence[MetricFamily]) -> float | None:
    """Sum of `api_requests` over the RPC methods; None when the family is absent."""
    if find_family(families, "api_requests") is None:
        return None
    return sum(api_requests(families, method).value_or(0.0) for method in API_METHODS)


def cache_metric(families: Sequence[MetricFamily], name: str) -> MetricView:
    return view_nested(families, "cache_metrics", "metric", name)


def _bound_key(bound: str) -> float:
    try:
        return float(bound)
    except ValueError:
        return float("inf")


def response_time_buckets(
    families: Sequence[MetricFamily], name: str = "api_response_time"
) -> list[tuple[str, float]]:
    """Per-bucket (non-cumulative) counts of a histogram summed across label sets."""
    family = find_family(families, name)
    if family is None or family.kind is not MetricKind.HISTOGRAM:
        return []

    totals: dict[str, float] = {}
    for sample in family.samples:
        for bound, count in (sample.buckets or {}).items():
            totals[bound] = totals.get(bound, 0.0) + count

    buckets: list[tuple[str, float]] = []
    previous = 0.0
    for bound, cumulative in sorted(totals.items(), key=lambda item: _bound_key(item[0])):
        buckets.append((bound, cumulative - previous))
        previous = cumulative
    return buckets
