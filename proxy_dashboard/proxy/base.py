"""Base interfaces for talking to the image proxy."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence


def _string_list(value: Any) -> list[str]:
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    return []


@dataclass
class RawReport:
    """One abuse report as returned by `describe_reports`."""

    id: str
    url: str
    categories: list[str] = field(default_factory=list)
    updated_at: str = ""
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "RawReport":
        known = {"id", "url", "categories", "updated_at"}
        return cls(
            id=str(payload.get("id") or ""),
            url=str(payload.get("url") or ""),
            categories=_string_list(payload.get("categories")),
            updated_at=str(payload.get("updated_at") or ""),
            extra={k: v for k, v in payload.items() if k not in known},
        )


@dataclass
class ModerationEntry:
    """One document description from `describe`, numbered by arrival order."""

    index: int
    url: str
    status: str = ""
    categories: list[str] = field(default_factory=list)
    provider: str = ""

    @classmethod
    def from_payload(cls, index: int, payload: Mapping[str, Any]) -> "ModerationEntry":
        return cls(
            index=index,
            url=str(payload.get("url") or ""),
            status=str(payload.get("status") or ""),
            categories=_string_list(payload.get("categories")),
            provider=str(payload.get("provider") or ""),
        )


@dataclass
class BuildInfo:
    package_version: str = ""
    git_version: str = ""


class ProxySource(ABC):
    """What the dashboard needs from the proxy."""

    @abstractmethod
    async def fetch_metrics(self) -> str:
        """Raw exposition text from the metrics endpoint."""
        ...

    @abstractmethod
    async def fetch_info(self) -> BuildInfo:
        ...

    @abstractmethod
    async def describe_reports(self) -> list[RawReport]:
        ...

    @abstractmethod
    async def describe(self, urls: Sequence[str] = ("*",)) -> list[ModerationEntry]:
        ...

    async def health_check(self) -> bool:
        """Check if the proxy is reachable."""
        return True
