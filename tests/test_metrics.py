from httpx import ASGITransport, AsyncClient

from app.config import Settings
from app.main import create_app
from app.models.schemas import Principal
from conftest import login


async def test_metrics_endpoint_requires_auth(api_client) -> None:
    resp = await api_client.get("/api/metrics")
    assert resp.status_code == 401


async def test_metrics_endpoint_returns_snapshot_and_counts_requests(api_client, sink) -> None:
    login(api_client, Principal(id=1, username="ops"))

    m1 = await api_client.get("/api/metrics")
    assert m1.status_code == 200
    payload1 = m1.json()
    assert "counters" in payload1
    assert "latency_ms" in payload1

    # /api/metrics itself should NOT affect http_requests_total, but it is still observed by telemetry.
    m1b = await api_client.get("/api/metrics")
    payload1b = m1b.json()
    assert payload1b["counters"]["http_requests_total"] == payload1["counters"]["http_requests_total"]
    assert [e.path for e in sink.events] == ["/api/metrics", "/api/metrics"]

    health = await api_client.get("/health")
    assert health.status_code == 200

    m2 = await api_client.get("/api/metrics")
    payload2 = m2.json()

    assert payload2["counters"]["http_requests_total"] == payload1["counters"]["http_requests_total"] + 1
    assert payload2["counters"]["telemetry_events_emitted_total"] >= 3


async def test_metrics_endpoint_can_be_disabled(sink) -> None:
    settings = Settings(ENABLE_METRICS_ENDPOINT=False)
    app = create_app(settings, sink=sink)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        login(client, Principal(id=1, username="ops"), settings)
        resp = await client.get("/api/metrics")

    assert resp.status_code == 404
    assert resp.json() == {"error": "Not Found"}
