"""Report and moderation boards, fetched once and then only re-sorted."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import asdict
from typing import Any, Generic, Sequence, TypeVar

from proxy_dashboard.proxy.base import ModerationEntry, ProxySource
from proxy_dashboard.proxy.client import ImageProxyClient
from proxy_dashboard.proxy.rpc import ProxyError
from proxy_dashboard.reports.aggregator import AggregatedReport, aggregate_reports, gateway_link
from proxy_dashboard.reports.sorting import SortableTable

logger = logging.getLogger("proxydash.reports")

REPORT_FIELDS = ("index", "url", "categories", "num_reports", "updated_at")
MODERATION_FIELDS = ("index", "url", "status", "categories", "provider")

RowT = TypeVar("RowT", AggregatedReport, ModerationEntry)


class Board(ABC, Generic[RowT]):
    """A table loaded from the proxy on demand and re-sorted in place."""

    name = "board"
    fields: Sequence[str] = ()

    def __init__(self, source: ProxySource | None = None) -> None:
        self.source = source or ImageProxyClient()
        self.table: SortableTable[RowT] = SortableTable(fields=self.fields)
        self.loaded = False
        self.last_error: str | None = None

    @abstractmethod
    async def _fetch_rows(self) -> list[RowT]:
        ...

    async def load(self) -> list[RowT]:
        """Fetch from the proxy and rebuild the table; sort state resets."""
        rows = await self._fetch_rows()
        self.table.replace(rows)
        self.loaded = True
        self.last_error = None
        logger.info(f"Loaded {len(rows)} {self.name} rows")
        return self.table.records

    async def load_safely(self) -> bool:
        try:
            await self.load()
            return True
        except ProxyError as e:
            self.last_error = str(e)
            logger.warning(f"{self.name} fetch failed: {e}")
            return False

    def sort(self, field: str) -> list[RowT]:
        return self.table.activate(field)

    def payload(self) -> dict[str, Any]:
        return {
            "loaded": self.loaded,
            "error": self.last_error,
            "sort": asdict(self.table.state),
            "rows": [
                {**asdict(row), "link": gateway_link(row.url)} for row in self.table.records
            ],
        }


class ReportBoard(Board[AggregatedReport]):
    """Abuse reports aggregated by URL."""

    name = "report"
    fields = REPORT_FIELDS

    async def _fetch_rows(self) -> list[AggregatedReport]:
        raw = await self.source.describe_reports()
        logger.debug(f"Aggregating {len(raw)} raw reports")
        return aggregate_reports(raw)


class ModerationBoard(Board[ModerationEntry]):
    """Moderation descriptions for every document the proxy knows."""

    name = "moderation"
    fields = MODERATION_FIELDS

    async def _fetch_rows(self) -> list[ModerationEntry]:
        return await self.source.describe(["*"])


report_board = ReportBoard()
moderation_board = ModerationBoard()
