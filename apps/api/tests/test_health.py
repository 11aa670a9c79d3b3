import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from signal_relay.main import app
from signal_relay.services.signaling import SignalingRelay


@pytest.fixture
def fresh_relay():
    previous = app.state.relay
    app.state.relay = SignalingRelay()
    yield app.state.relay
    app.state.relay = previous


@pytest.mark.asyncio
async def test_health_endpoint(fresh_relay) -> None:
    transport = ASGITransport(app=app)

    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        response = await client.get("/health")
        api_response = await client.get("/api/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["connections"] == 0
    assert body["uptime"] >= 0
    assert api_response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_index_and_head_probes(fresh_relay) -> None:
    transport = ASGITransport(app=app)

    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        index = await client.get("/")
        head_index = await client.head("/")
        head_health = await client.head("/health")

    assert index.status_code == 200
    assert index.json()["status"] == "Server is running"
    assert index.json()["connections"] == 0
    assert "timestamp" in index.json()
    assert head_index.status_code == 200
    assert head_health.status_code == 200


def test_health_counts_open_signaling_connections(fresh_relay) -> None:
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as ws_a, client.websocket_connect("/ws") as ws_b:
            ws_a.receive_json()
            ws_b.receive_json()

            assert client.get("/health").json()["connections"] == 2
