"""Metrics API: stat blocks, chart series and the raw snapshot."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from proxy_dashboard.api.dependencies import get_sampler
from proxy_dashboard.metrics.lookup import response_time_buckets
from proxy_dashboard.metrics.parser import MetricFamily, json_number, render_exposition
from proxy_dashboard.workers.sampler import MetricsSampler, SamplerStatus

router = APIRouter(prefix="/api/metrics", tags=["metrics"])


def _family_payload(family: MetricFamily) -> dict:
    return {
        "name": family.name,
        "help": family.help,
        "kind": family.kind.value,
        "samples": [
            {
                "labels": sample.labels,
                "value": json_number(sample.value),
                "buckets": (
                    {k: json_number(v) for k, v in sample.buckets.items()}
                    if sample.buckets is not None
                    else None
                ),
                "quantiles": (
                    {k: json_number(v) for k, v in sample.quantiles.items()}
                    if sample.quantiles is not None
                    else None
                ),
                "sum": json_number(sample.sum),
            }
            for sample in family.samples
        ],
    }


@router.get("/overview")
async def get_overview(sampler: MetricsSampler = Depends(get_sampler)):
    """Sampler status and the single-value tiles."""
    return sampler.overview()


@router.get("/series")
async def get_series(sampler: MetricsSampler = Depends(get_sampler)):
    """Rolling windows as `[timestamp_ms, value]` pairs, oldest first."""
    return {
        "status": sampler.status.value,
        "interval_seconds": sampler.interval,
        "series": sampler.dashboard.series_payload(),
    }


@router.get("/response-times")
async def get_response_times(sampler: MetricsSampler = Depends(get_sampler)):
    """Bar chart data: API responses per latency bucket (milliseconds)."""
    return {
        "status": sampler.status.value,
        "buckets": [
            {"name": bound, "value": json_number(count)}
            for bound, count in response_time_buckets(sampler.families)
        ],
    }


@router.get("/families")
async def get_families(text: bool = False, sampler: MetricsSampler = Depends(get_sampler)):
    """The latest parsed snapshot, as JSON or re-rendered exposition text."""
    if text:
        return PlainTextResponse(render_exposition(sampler.families))
    return {
        "status": sampler.status.value,
        "available": sampler.status is SamplerStatus.AVAILABLE,
        "families": [_family_payload(family) for family in sampler.families],
    }
