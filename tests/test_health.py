from uuid import uuid4

import pytest


@pytest.mark.asyncio
async def test_healthcheck(service_client):
    response = await service_client.get("/health")
    assert response.status == 200
    payload = await response.json()
    assert payload["status"] == "ok"
    assert payload["service"] == "qr-webhooks"


@pytest.mark.asyncio
async def test_trace_headers_are_echoed(service_client):
    trace_id = str(uuid4())
    response = await service_client.get("/health", headers={"X-Trace-Id": trace_id})
    assert response.headers["X-Trace-Id"] == trace_id
    assert "X-Request-Id" in response.headers
