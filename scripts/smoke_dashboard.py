#!/usr/bin/env python3
"""Smoke check for a running proxy dashboard.

Walks the read and sort endpoints against a live backend (with a live proxy
behind it) and fails fast on regressions. Base URL comes from argv[1].
"""

from __future__ import annotations

import json
import sys
import time
from dataclasses import dataclass

import httpx

BASE_URL = "http://127.0.0.1:8000"
TIMEOUT = 30.0
READY_WAIT_SECONDS = 15.0


@dataclass
class SmokeState:
    base_url: str = BASE_URL
    report_rows: int = 0


def expect(condition: bool, message: str) -> None:
    if not condition:
        raise AssertionError(message)


def get(client: httpx.Client, state: SmokeState, path: str, expected: int = 200, **kwargs):
    resp = client.get(f"{state.base_url}{path}", **kwargs)
    expect(resp.status_code == expected, f"GET {path} -> {resp.status_code} != {expected}; body={resp.text[:500]}")
    return resp


def post(client: httpx.Client, state: SmokeState, path: str, expected: int = 200, **kwargs):
    resp = client.post(f"{state.base_url}{path}", **kwargs)
    expect(resp.status_code == expected, f"POST {path} -> {resp.status_code} != {expected}; body={resp.text[:500]}")
    return resp


def wait_until_ready(client: httpx.Client, state: SmokeState) -> None:
    deadline = time.monotonic() + READY_WAIT_SECONDS
    while time.monotonic() < deadline:
        resp = client.get(f"{state.base_url}/api/health/ready")
        if resp.status_code == 200:
            return
        time.sleep(1.0)
    raise AssertionError("dashboard never became ready (is the proxy metrics endpoint up?)")


def main(argv: list[str]) -> int:
    state = SmokeState(base_url=(argv[1] if len(argv) > 1 else BASE_URL).rstrip("/"))
    with httpx.Client(timeout=TIMEOUT) as client:
        # 1) Liveness + readiness
        live = get(client, state, "/api/health/live").json()
        expect(live.get("status") == "alive", "liveness probe failed")
        wait_until_ready(client, state)

        # 2) Stat blocks and chart series
        overview = get(client, state, "/api/metrics/overview").json()
        expect(overview.get("status") == "available", "metrics not available")
        expect(len(overview.get("blocks", [])) == 10, "expected ten stat blocks")

        series = get(client, state, "/api/metrics/series").json()["series"]
        lengths = {len(pairs) for pairs in series.values()}
        expect(len(lengths) == 1, f"series windows differ in length: {lengths}")

        _ = get(client, state, "/api/metrics/response-times").json()
        text = get(client, state, "/api/metrics/families", params={"text": "true"}).text
        expect("# TYPE" in text, "re-rendered exposition has no TYPE lines")

        # 3) Reports: fetch, sort twice, bad field
        reports = post(client, state, "/api/reports/refresh").json()
        state.report_rows = len(reports["rows"])

        first = post(client, state, "/api/reports/sort", params={"field": "num_reports"}).json()
        expect(first["sort"]["ascending"] is True, "first activation should sort ascending")
        second = post(client, state, "/api/reports/sort", params={"field": "num_reports"}).json()
        expect(second["sort"]["ascending"] is False, "second activation should flip to descending")
        expect(len(second["rows"]) == state.report_rows, "sorting changed the row count")

        _ = post(client, state, "/api/reports/sort", expected=400, params={"field": "no_such_field"})

        # 4) Moderation + build info
        _ = get(client, state, "/api/moderation").json()
        info = get(client, state, "/api/info").json()
        expect("package_version" in info, "info payload missing package_version")

    print(json.dumps({"ok": True, "message": "proxy dashboard smoke passed", "reports": state.report_rows}))
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main(sys.argv))
    except Exception as exc:  # noqa: BLE001
        print(json.dumps({"ok": False, "error": str(exc)}))
        sys.exit(1)
