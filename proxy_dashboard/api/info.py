"""Proxy build info and sampler statistics."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException

from proxy_dashboard.api.dependencies import get_proxy_source, get_sampler
from proxy_dashboard.proxy.base import ProxySource
from proxy_dashboard.proxy.rpc import ProxyError
from proxy_dashboard.workers.sampler import MetricsSampler

router = APIRouter(prefix="/api", tags=["info"])


@router.get("/info")
async def get_info(source: ProxySource = Depends(get_proxy_source)):
    """Package and git version reported by the proxy."""
    try:
        info = await source.fetch_info()
    except ProxyError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return asdict(info)


@router.get("/stats")
async def get_stats(sampler: MetricsSampler = Depends(get_sampler)):
    return {
        "sampler_running": sampler.running,
        "status": sampler.status.value,
        "polls": sampler.stats.snapshot(),
    }
