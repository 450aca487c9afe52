"""
Tests for the httpx interception transport.

Exercises the full request path: httpx client -> InterceptingTransport ->
Interceptor -> lifecycle/executor, with pass-through to an inner transport.
"""

import httpx
import pytest

from conftest import SnapshotServer
from snapshim.engine import DatabaseLifecycle, SnapshotLoader
from snapshim.interceptor import InterceptingTransport, Interceptor

APP = "http://app.local"


class Upstream:
    """Inner transport double recording pass-through requests."""

    def __init__(self):
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(200, json={"upstream": True, "path": request.url.path})


def _client(server: SnapshotServer, upstream: Upstream) -> tuple[httpx.AsyncClient, DatabaseLifecycle]:
    lifecycle = DatabaseLifecycle(
        SnapshotLoader(f"{APP}/assets/db/app.sqlite?v=2", client=server.client())
    )
    transport = InterceptingTransport(
        Interceptor(lifecycle, scope=f"{APP}/"),
        inner=httpx.MockTransport(upstream.handler),
    )
    return httpx.AsyncClient(transport=transport, base_url=APP), lifecycle


@pytest.fixture
def upstream() -> Upstream:
    return Upstream()


# =============================================================================
# Scenarios
# =============================================================================


class TestScenarios:
    """End-to-end request scenarios."""

    @pytest.mark.asyncio
    async def test_select(self, snapshot_server, upstream):
        client, _ = _client(snapshot_server, upstream)
        async with client:
            resp = await client.post("/api", json={"query": "SELECT 1 AS x"})

        assert resp.status_code == 200
        assert resp.headers["content-type"] == "application/json"
        assert resp.json() == [{"x": 1}]
        assert upstream.requests == []

    @pytest.mark.asyncio
    async def test_select_with_trailing_slash_and_params(self, snapshot_server, upstream):
        client, _ = _client(snapshot_server, upstream)
        async with client:
            resp = await client.post(
                "/api/",
                json={"query": "SELECT name FROM items WHERE id = ?", "data": [3]},
            )

        assert resp.json() == [{"name": "Blade Runner"}]

    @pytest.mark.asyncio
    async def test_blank_query(self, snapshot_server, upstream):
        client, _ = _client(snapshot_server, upstream)
        async with client:
            resp = await client.post("/api", json={"query": ""})

        assert resp.status_code == 400
        assert resp.json() == {"error": "Bad Request"}

    @pytest.mark.asyncio
    async def test_users_forbidden(self, snapshot_server, upstream):
        client, _ = _client(snapshot_server, upstream)
        async with client:
            resp = await client.post("/api", json={"query": "SELECT * FROM users"})

        assert resp.status_code == 403
        assert resp.json() == {"error": "Forbidden"}

    @pytest.mark.asyncio
    async def test_login_forbidden(self, snapshot_server, upstream):
        client, lifecycle = _client(snapshot_server, upstream)
        async with client:
            resp = await client.post("/login", json={"username": "a", "password": "b"})

        assert resp.status_code == 403
        assert resp.json() == {"error": "Forbidden in static build"}
        assert snapshot_server.calls == 0
        assert lifecycle.is_ready is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method", ["PUT", "POST"])
    async def test_update_forbidden(self, snapshot_server, upstream, method):
        client, _ = _client(snapshot_server, upstream)
        async with client:
            resp = await client.request(method, "/update", content=b"anything")

        assert resp.status_code == 403
        assert resp.json() == {"error": "Forbidden in static build"}

    @pytest.mark.asyncio
    async def test_diagnostic_unreachable_snapshot(self, failing_snapshot_server, upstream):
        client, _ = _client(failing_snapshot_server, upstream)
        async with client:
            resp = await client.get("/api")

        assert resp.status_code == 200
        assert resp.json() == {"ready": False}

    @pytest.mark.asyncio
    async def test_diagnostic_ready(self, snapshot_server, upstream):
        client, _ = _client(snapshot_server, upstream)
        async with client:
            first = await client.get("/api/")
            second = await client.get("/api")

        assert first.json() == {"ready": True}
        assert second.json() == {"ready": True}
        assert snapshot_server.calls == 1

    @pytest.mark.asyncio
    async def test_query_after_failed_load_retries(self, upstream):
        server = SnapshotServer(status_code=503)
        client, lifecycle = _client(server, upstream)
        async with client:
            failed = await client.post("/api", json={"query": "SELECT 1 AS x"})
            server.status_code = 200
            recovered = await client.post("/api", json={"query": "SELECT 1 AS x"})

        assert failed.status_code == 500
        assert failed.json()["details"].startswith("DB fetch failed: 503")
        assert recovered.json() == [{"x": 1}]
        assert server.calls == 2
        assert lifecycle.is_ready is True


# =============================================================================
# Pass-through
# =============================================================================


class TestPassThrough:
    """Requests the interceptor does not claim reach the inner transport."""

    @pytest.mark.asyncio
    async def test_other_same_origin_path(self, snapshot_server, upstream):
        client, _ = _client(snapshot_server, upstream)
        async with client:
            resp = await client.get("/index.html")

        assert resp.json() == {"upstream": True, "path": "/index.html"}
        assert len(upstream.requests) == 1

    @pytest.mark.asyncio
    async def test_cross_origin(self, snapshot_server, upstream):
        client, _ = _client(snapshot_server, upstream)
        async with client:
            resp = await client.post("http://api.elsewhere/api", json={"query": "SELECT 1"})

        assert resp.json()["upstream"] is True
        assert snapshot_server.calls == 0

    @pytest.mark.asyncio
    async def test_body_forwarded_unmodified(self, snapshot_server, upstream):
        client, _ = _client(snapshot_server, upstream)
        async with client:
            await client.put("/api", content=b"raw-body")

        assert upstream.requests[0].method == "PUT"
        assert upstream.requests[0].content == b"raw-body"
