"""Proxy dashboard — FastAPI application entry point."""

from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from proxy_dashboard.config import settings
from proxy_dashboard.logging_config import setup_logging

from proxy_dashboard.api.info import router as info_router
from proxy_dashboard.api.metrics import router as metrics_router
from proxy_dashboard.api.reports import router as reports_router
from proxy_dashboard.api.websocket import manager as ws_manager
from proxy_dashboard.api.websocket import router as websocket_router
from proxy_dashboard.reports.board import moderation_board, report_board
from proxy_dashboard.workers.sampler import SamplerStatus, sampler

logger = logging.getLogger("proxydash")

# Rate limiter
limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])


def _startup_checks() -> None:
    """Log warnings for misconfigured settings."""
    if settings.is_production and not settings.cors_origins_list:
        logger.warning("⚠  APP_ENV=production but CORS_ORIGINS is empty")
    if not settings.proxy_api_key:
        logger.info("○ No PROXY_API_KEY set, RPC calls go out without an apikey header")
    if settings.poll_interval_seconds <= 0:
        raise RuntimeError("POLL_INTERVAL_SECONDS must be positive")
    logger.info(
        f"✓ Rates: reset policy={settings.counter_reset_policy}, clock={settings.rate_clock}"
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    setup_logging(settings.log_level)
    _startup_checks()

    logger.info("✦ Proxy dashboard started")
    logger.info(f"  Proxy: {settings.proxy_url}")
    logger.info(f"  Poll interval: {settings.poll_interval_seconds}s")

    sampler.subscribe(ws_manager.broadcast)
    await sampler.start()

    # Reports are fetched once per mount, not polled.
    await report_board.load_safely()
    await moderation_board.load_safely()

    yield

    await sampler.stop()
    logger.info("✦ Proxy dashboard shutting down")


app = FastAPI(
    title="Proxy Dashboard",
    description="Metrics and report dashboard API for the image proxy",
    version="0.3.0",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request tracing + access log middleware
@app.middleware("http")
async def request_context(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = request_id
    start = time.perf_counter()

    response: Response = await call_next(request)

    duration_ms = round((time.perf_counter() - start) * 1000, 2)
    response.headers["X-Request-ID"] = request_id
    logger.info(
        "request completed",
        extra={
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        },
    )
    return response


# Routers
app.include_router(metrics_router)
app.include_router(reports_router)
app.include_router(info_router)
app.include_router(websocket_router)


@app.get("/")
async def root():
    return JSONResponse(
        {
            "service": "proxy-dashboard",
            "status": "ok",
            "endpoints": {
                "health": "/api/health",
                "metrics": "/api/metrics/overview",
                "reports": "/api/reports",
                "docs": "/docs",
            },
        }
    )


@app.get("/api/health")
async def health_check():
    metrics_available = sampler.status is SamplerStatus.AVAILABLE
    return {
        "status": "healthy" if metrics_available else "degraded",
        "service": "proxy-dashboard",
        "version": "0.3.0",
        "websocket_connections": ws_manager.connection_count,
        "sampler_active": sampler.running,
        "metrics_status": sampler.status.value,
        "reports_loaded": report_board.loaded,
    }


@app.get("/api/health/live")
async def liveness_check():
    return {"status": "alive", "service": "proxy-dashboard"}


@app.get("/api/health/ready")
async def readiness_check(response: Response):
    sampler_ready = sampler.running
    metrics_ready = sampler.status is SamplerStatus.AVAILABLE
    ready = sampler_ready and metrics_ready

    if not ready:
        response.status_code = 503

    return {
        "status": "ready" if ready else "not_ready",
        "checks": {
            "sampler": sampler_ready,
            "metrics": metrics_ready,
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("proxy_dashboard.main:app", host=settings.host, port=settings.port)
