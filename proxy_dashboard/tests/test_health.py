import pytest
from httpx import ASGITransport, AsyncClient

from proxy_dashboard.main import app


@pytest.mark.asyncio
async def test_liveness_and_request_id_header():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        res = await client.get("/api/health/live", headers={"X-Request-ID": "req-42"})

    assert res.status_code == 200
    assert res.json() == {"status": "alive", "service": "proxy-dashboard"}
    assert res.headers["X-Request-ID"] == "req-42"


@pytest.mark.asyncio
async def test_readiness_fails_before_sampler_runs():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        res = await client.get("/api/health/ready")

    assert res.status_code == 503
    assert res.json()["checks"] == {"sampler": False, "metrics": False}
