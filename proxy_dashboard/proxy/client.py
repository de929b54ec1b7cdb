"""HTTP client for the image proxy: metrics, build info and JSON-RPC calls."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

import httpx

from proxy_dashboard.config import settings
from proxy_dashboard.proxy.base import BuildInfo, ModerationEntry, ProxySource, RawReport
from proxy_dashboard.proxy.rpc import (
    EndpointUnavailable,
    RpcError,
    RpcMethod,
    TransportError,
    build_envelope,
    unwrap_result,
)

logger = logging.getLogger("proxydash.client")


class ImageProxyClient(ProxySource):
    """Talks to one proxy instance.

    A fresh `httpx.AsyncClient` is opened per call; `transport` lets tests
    substitute an `httpx.MockTransport`.
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.proxy_url).rstrip("/")
        self.api_key = settings.proxy_api_key if api_key is None else api_key
        self.timeout = timeout or settings.request_timeout_seconds
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
        return headers

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint.lstrip('/')}" if endpoint else self.base_url

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc

        if resp.status_code >= 400:
            raise EndpointUnavailable(url, resp.status_code)
        return resp

    async def fetch_metrics(self) -> str:
        resp = await self._request("GET", self._url(settings.metrics_endpoint))
        return resp.text

    async def fetch_info(self) -> BuildInfo:
        resp = await self._request("GET", self._url(settings.info_endpoint))
        try:
            payload = resp.json()
        except ValueError as exc:
            raise RpcError(-1, "info endpoint returned invalid JSON") from exc
        if not isinstance(payload, Mapping):
            raise RpcError(-1, "info endpoint returned a non-object body")
        return BuildInfo(
            package_version=str(payload.get("package_version") or ""),
            git_version=str(payload.get("git_version") or ""),
        )

    async def call(self, method: RpcMethod | str, params: Mapping[str, Any] | None = None) -> Any:
        """Send one JSON-RPC request and return its `result`."""
        envelope = build_envelope(method, params, version=settings.jsonrpc_version)
        resp = await self._request("POST", self.base_url, json=envelope)
        try:
            payload = resp.json()
        except ValueError as exc:
            raise RpcError(-1, f"{envelope['method']} returned invalid JSON") from exc
        return unwrap_result(payload)

    async def _call_for_objects(
        self, method: RpcMethod, params: Mapping[str, Any] | None = None
    ) -> list[Mapping[str, Any]]:
        """Call `method` and return the objects of its list result.

        A null result is an empty list; non-object items are dropped.
        """
        result = await self.call(method, params)
        if result is None:
            return []
        if not isinstance(result, list):
            raise RpcError(-1, f"{method.value} result is not a list")

        items = [item for item in result if isinstance(item, Mapping)]
        if len(items) != len(result):
            logger.warning(f"{method.value}: dropped {len(result) - len(items)} non-object items")
        return items

    async def describe_reports(self) -> list[RawReport]:
        items = await self._call_for_objects(RpcMethod.DESCRIBE_REPORTS)
        return [RawReport.from_payload(item) for item in items]

    async def describe(self, urls: Sequence[str] = ("*",)) -> list[ModerationEntry]:
        items = await self._call_for_objects(RpcMethod.DESCRIBE, {"urls": list(urls)})
        return [ModerationEntry.from_payload(i, item) for i, item in enumerate(items)]

    async def health_check(self) -> bool:
        try:
            await self.fetch_metrics()
            return True
        except Exception:
            logger.debug("Proxy health check failed", exc_info=True)
            return False
