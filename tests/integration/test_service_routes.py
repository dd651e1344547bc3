"""Integration tests for /health, /healthz, /metrics and the proxy routes."""

from collections.abc import AsyncGenerator, Callable, Generator

import httpx
import pytest
from fastapi.testclient import TestClient

from travelmaker.api.deps import get_http_client, get_store
from travelmaker.db.inmemory import InMemoryKeyValueStore
from travelmaker.db.repositories import StorageError
from travelmaker.main import app

Handler = Callable[[httpx.Request], httpx.Response]


class UnreachableStore(InMemoryKeyValueStore):
    def keys(self) -> list[str]:
        raise StorageError("connection refused") from ConnectionRefusedError()


def override_http_client(
    handler: Handler, seen: list[httpx.Request]
) -> Callable[[], AsyncGenerator[httpx.AsyncClient, None]]:
    """Dependency override yielding a MockTransport client that records requests."""

    def recording_handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    async def override() -> AsyncGenerator[httpx.AsyncClient, None]:
        async with httpx.AsyncClient(transport=httpx.MockTransport(recording_handler)) as client:
            yield client

    return override


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Create test client over an in-memory store."""
    store = InMemoryKeyValueStore()
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealthEndpoint:
    """Test /health and /healthz endpoints."""

    def test_health_always_ok(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_healthz_returns_200_when_storage_ok(self, client: TestClient) -> None:
        response = client.get("/healthz")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["components"]["storage"] == "ok"
        assert data["components"]["storage_backend"] == "memory"
        assert data["components"]["llm"] == "stub"

    def test_healthz_returns_503_when_storage_fails(self, client: TestClient) -> None:
        app.dependency_overrides[get_store] = lambda: UnreachableStore()

        response = client.get("/healthz")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "degraded"
        assert data["components"]["storage"] == "error: ConnectionRefusedError"


class TestMetricsEndpoint:
    """Test /metrics endpoint."""

    def test_metrics_exposes_upstream_series(self, client: TestClient) -> None:
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]
        assert "upstream_latency_ms" in response.text
        assert "cache_hits_total" in response.text


class TestProxyRoutes:
    """Test geocoding and exchange-rate pass-through routes."""

    def test_nominatim_search_forwards_query(self, client: TestClient) -> None:
        seen: list[httpx.Request] = []
        app.dependency_overrides[get_http_client] = override_http_client(
            lambda request: httpx.Response(200, json=[{"lat": "35.0", "lon": "135.7"}]), seen
        )

        response = client.get("/api/nominatim/search", params={"q": "Kyoto", "format": "json"})

        assert response.status_code == 200
        assert response.json() == [{"lat": "35.0", "lon": "135.7"}]
        assert seen[0].url.host == "nominatim.openstreetmap.org"
        assert seen[0].url.params["q"] == "Kyoto"
        assert seen[0].headers["User-Agent"] == "travelmaker/0.1"

    def test_exchange_rate_forwards_code(self, client: TestClient) -> None:
        seen: list[httpx.Request] = []
        app.dependency_overrides[get_http_client] = override_http_client(
            lambda request: httpx.Response(200, json={"rates": {"TWD": 0.21}}), seen
        )

        response = client.get("/api/exchange-rate/latest/jpy")

        assert response.status_code == 200
        assert response.json()["rates"]["TWD"] == 0.21
        assert seen[0].url.path == "/v4/latest/JPY"

    def test_upstream_status_is_passed_through(self, client: TestClient) -> None:
        app.dependency_overrides[get_http_client] = override_http_client(
            lambda request: httpx.Response(404, json={"error": "unknown"}), []
        )

        response = client.get("/api/exchange-rate/latest/XYZ")

        assert response.status_code == 404

    def test_network_failure_returns_502(self, client: TestClient) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("offline", request=request)

        app.dependency_overrides[get_http_client] = override_http_client(handler, [])

        response = client.get("/api/nominatim/search", params={"q": "Kyoto"})

        assert response.status_code == 502

    def test_invalid_currency_code_rejected(self, client: TestClient) -> None:
        response = client.get("/api/exchange-rate/latest/12")

        assert response.status_code == 400
