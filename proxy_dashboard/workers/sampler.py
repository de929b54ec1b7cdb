"""Metrics sampler — polls the proxy's metrics exposition on a fixed cadence."""

from __future__ import annotations

import asyncio
import enum
import logging
import time
from dataclasses import asdict
from typing import Awaitable, Callable, Optional

from proxy_dashboard.config import settings
from proxy_dashboard.metrics.dashboard import MetricsDashboard
from proxy_dashboard.metrics.parser import MetricFamily, ParseError, parse_exposition
from proxy_dashboard.observability.metrics import PollStats, poll_stats
from proxy_dashboard.proxy.base import ProxySource
from proxy_dashboard.proxy.client import ImageProxyClient
from proxy_dashboard.proxy.rpc import EndpointUnavailable, ProxyError
from proxy_dashboard.utils.time import now_ms

logger = logging.getLogger("proxydash.sampler")

Subscriber = Callable[[dict], Awaitable[None]]


class SamplerStatus(str, enum.Enum):
    PENDING = "pending"
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


class MetricsSampler:
    """Asyncio-based sampler for the proxy metrics endpoint.

    Runs as a background task inside the FastAPI event loop. The first poll
    fires immediately, later ones every `interval` seconds. On each poll:
      1. Fetch the exposition text
      2. Parse it into families
      3. Feed the dashboard windows and rate baselines
      4. Push the update to subscribers

    A poll that comes due while the previous one is still in flight is skipped.
    `stop()` bumps a generation counter; a poll that started under an older
    generation drops its result instead of writing state.
    """

    def __init__(
        self,
        source: ProxySource | None = None,
        dashboard: MetricsDashboard | None = None,
        stats: PollStats | None = None,
        interval: float | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.interval = settings.poll_interval_seconds if interval is None else interval
        self.source = source or ImageProxyClient()
        self.dashboard = dashboard or MetricsDashboard.from_settings()
        self.stats = stats or poll_stats
        self.clock = clock
        self.status = SamplerStatus.PENDING
        self.families: list[MetricFamily] = []
        self.last_updated_ms: Optional[int] = None
        self.last_error: Optional[str] = None
        self._subscribers: list[Subscriber] = []
        self._task: Optional[asyncio.Task] = None
        self._poll_task: Optional[asyncio.Task] = None
        self._running = False
        self._in_flight = False
        self._generation = 0

    @property
    def running(self) -> bool:
        return self._running

    def subscribe(self, callback: Subscriber) -> None:
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    async def start(self) -> None:
        """Start the background sampler."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"Sampler started (interval={self.interval}s)")

    async def stop(self) -> None:
        """Stop sampling; any poll still in flight is cancelled and discarded."""
        self._running = False
        self._generation += 1
        for task in (self._task, self._poll_task):
            if task and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._task = None
        self._poll_task = None
        logger.info("Sampler stopped")

    async def _run_loop(self) -> None:
        while self._running:
            if self._poll_task is not None and not self._poll_task.done():
                self.stats.observe_poll("skipped", 0.0)
                logger.warning("Previous poll still in flight, skipping this cycle")
            else:
                self._poll_task = asyncio.create_task(self._guarded_poll())
            await asyncio.sleep(self.interval)

    async def _guarded_poll(self) -> None:
        try:
            await self.poll_once()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Unexpected error in metrics poll")

    async def poll_once(self) -> bool:
        """Run one poll; returns True when a new snapshot was applied."""
        if self._in_flight:
            self.stats.observe_poll("skipped", 0.0)
            return False

        self._in_flight = True
        generation = self._generation
        start = time.perf_counter()
        families: list[MetricFamily] | None = None
        outcome = "ok"
        try:
            text = await self.source.fetch_metrics()
            families = parse_exposition(text)
        except EndpointUnavailable as e:
            outcome = "unavailable"
            if generation == self._generation:
                self._mark_unavailable(e)
        except ParseError as e:
            outcome = "parse_error"
            logger.warning(f"Discarding unparseable metrics: {e}")
        except ProxyError as e:
            outcome = "transport_error"
            logger.warning(f"Metrics fetch failed: {e}")
        finally:
            self._in_flight = False
        duration_ms = round((time.perf_counter() - start) * 1000, 2)

        if generation != self._generation:
            outcome = "discarded"
            logger.debug("Dropping poll result from a stopped sampler")
        elif families is not None:
            self._apply(families)

        self.stats.observe_poll(outcome, duration_ms)
        logger.debug("poll finished", extra={"outcome": outcome, "duration_ms": duration_ms})

        if outcome in ("ok", "unavailable"):
            await self._publish()
        return outcome == "ok"

    def _apply(self, families: list[MetricFamily]) -> None:
        timestamp = self.clock()
        self.dashboard.apply(families, timestamp)
        self.families = families
        self.status = SamplerStatus.AVAILABLE
        self.last_updated_ms = timestamp
        self.last_error = None

    def _mark_unavailable(self, error: EndpointUnavailable) -> None:
        if self.status is not SamplerStatus.UNAVAILABLE:
            logger.warning(f"Metrics endpoint unavailable: {error}")
        self.status = SamplerStatus.UNAVAILABLE
        self.families = []
        self.last_error = str(error)

    async def _publish(self) -> None:
        payload = self.update_payload()
        for callback in list(self._subscribers):
            try:
                await callback(payload)
            except Exception:
                logger.exception("Sampler subscriber failed")

    def overview(self) -> dict:
        """Status plus stat blocks; no blocks unless the latest poll succeeded."""
        blocks = []
        if self.status is SamplerStatus.AVAILABLE:
            now_seconds = self.clock() / 1000.0
            blocks = [asdict(b) for b in self.dashboard.stat_blocks(self.families, now_seconds)]
        return {
            "status": self.status.value,
            "last_updated_ms": self.last_updated_ms,
            "error": self.last_error,
            "blocks": blocks,
        }

    def update_payload(self) -> dict:
        return {
            "type": "metrics",
            "status": self.status.value,
            "timestamp": self.last_updated_ms,
            "total_requests": self.dashboard.total_requests,
            "series": self.dashboard.series_payload(),
        }


# Global sampler instance
sampler = MetricsSampler()
