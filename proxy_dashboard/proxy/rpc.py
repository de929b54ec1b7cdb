"""JSON-RPC envelope helpers and the proxy error taxonomy."""

from __future__ import annotations

import enum
from typing import Any, Mapping


class RpcMethod(str, enum.Enum):
    FETCH = "img_proxy_fetch"
    DESCRIBE = "img_proxy_describe"
    REPORT = "img_proxy_report"
    DESCRIBE_REPORTS = "img_proxy_describe_report"


class ProxyError(Exception):
    """Base class for failures talking to the proxy."""


class TransportError(ProxyError):
    """The request never produced a response (connect error, timeout, ...)."""


class EndpointUnavailable(ProxyError):
    """The proxy answered with an error status."""

    def __init__(self, url: str, status_code: int) -> None:
        super().__init__(f"{url} returned HTTP {status_code}")
        self.url = url
        self.status_code = status_code


class RpcError(ProxyError):
    """The proxy answered with a JSON-RPC error body."""

    def __init__(self, code: int, reason: str, request_id: str | None = None) -> None:
        super().__init__(f"rpc error {code}: {reason}")
        self.code = code
        self.reason = reason
        self.request_id = request_id


def build_envelope(
    method: RpcMethod | str,
    params: Mapping[str, Any] | None = None,
    version: str = "1.0.0",
) -> dict[str, Any]:
    envelope: dict[str, Any] = {
        "jsonrpc": version,
        "method": method.value if isinstance(method, RpcMethod) else method,
    }
    if params is not None:
        envelope["params"] = dict(params)
    return envelope


def unwrap_result(payload: Any) -> Any:
    """Return `result` from a response body or raise `RpcError`."""
    if not isinstance(payload, Mapping):
        raise RpcError(-1, "response body is not a JSON object")
    error = payload.get("error")
    if error:
        if isinstance(error, Mapping):
            code = error.get("code")
            raise RpcError(
                int(code) if code is not None else -1,
                str(error.get("reason") or "unknown error"),
                error.get("request_id"),
            )
        raise RpcError(-1, str(error))
    if "result" not in payload:
        raise RpcError(-1, "response has no result")
    return payload["result"]
