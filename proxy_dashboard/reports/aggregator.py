"""Merges duplicate abuse reports for the same URL."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Iterable, Mapping

from proxy_dashboard.config import settings
from proxy_dashboard.proxy.base import RawReport


@dataclass
class AggregatedReport:
    """All reports sharing one URL.

    `index` is the first-seen position in the raw list and survives sorting.
    """

    index: int
    url: str
    id: list[str] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)
    updated_at: str = ""
    num_reports: int = 1

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _unique(values: Iterable[str]) -> list[str]:
    seen: list[str] = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


def aggregate_reports(reports: Iterable[RawReport | Mapping[str, Any]]) -> list[AggregatedReport]:
    """Group reports by URL in first-seen order.

    Counts and identifiers accumulate, categories are unioned in first-seen
    order, and `updated_at` keeps the greatest value by string comparison.
    """
    by_url: dict[str, AggregatedReport] = {}

    for report in reports:
        if not isinstance(report, RawReport):
            report = RawReport.from_payload(report)

        existing = by_url.get(report.url)
        if existing is None:
            by_url[report.url] = AggregatedReport(
                index=len(by_url),
                url=report.url,
                id=[report.id],
                categories=_unique(report.categories),
                updated_at=report.updated_at,
            )
            continue

        existing.num_reports += 1
        existing.id.append(report.id)
        if report.updated_at > existing.updated_at:
            existing.updated_at = report.updated_at
        for category in report.categories:
            if category not in existing.categories:
                existing.categories.append(category)

    return list(by_url.values())


def gateway_link(url: str, gateway: str | None = None) -> str:
    """Public gateway link for a content URL such as `ipfs://ipfs/<cid>`."""
    base = gateway if gateway is not None else settings.ipfs_gateway_url
    cid = url.rstrip("/").split("/")[-1]
    return f"{base.rstrip('/')}/{cid}"
