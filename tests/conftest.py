"""Shared pytest fixtures.

Provides:
- FakeBackend: an httpx.MockTransport handler standing in for WordPress or
  the gateway, with canned responses per (method, path)
- Admin data layer fixtures (ApiClient, QueryCache, AdminSession)
- Gateway fixtures (TestClient, WordPress client pointed at a FakeBackend)
"""

import json
from typing import Any, Callable, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from cheapalarms.admin import AdminSession
from cheapalarms.cache import QueryCache
from cheapalarms.main import app
from cheapalarms.services import ApiClient, wp_client

GATEWAY_URL = "http://gateway.test"
WP_URL = "http://wp.test/wp-json"


class FakeBackend:
    """
    Canned HTTP backend.

    Each on() call queues one response for (method, path). Responses are
    served in order; the last one repeats.
    """

    def __init__(self, prefix: str = ""):
        self.prefix = prefix
        self.routes: dict[tuple[str, str], list[Callable[[httpx.Request], httpx.Response]]] = {}
        self.requests: list[httpx.Request] = []

    def on(
        self,
        method: str,
        path: str,
        json_body: Any = None,
        status: int = 200,
        text: Optional[str] = None,
        headers: Optional[dict] = None,
        exc: Optional[Exception] = None,
    ) -> "FakeBackend":
        def respond(request: httpx.Request) -> httpx.Response:
            if exc is not None:
                raise exc
            if text is not None:
                return httpx.Response(status, text=text, headers=headers)
            if json_body is None:
                return httpx.Response(status, headers=headers)
            return httpx.Response(status, json=json_body, headers=headers)

        self.routes.setdefault((method.upper(), self.prefix + path), []).append(respond)
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"ok": False, "err": f"No route for {request.url.path}"})
        respond = queue.pop(0) if len(queue) > 1 else queue[0]
        return respond(request)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls(self, method: Optional[str] = None, path: Optional[str] = None) -> list[httpx.Request]:
        return [
            request
            for request in self.requests
            if (method is None or request.method == method.upper())
            and (path is None or request.url.path == self.prefix + path)
        ]

    @staticmethod
    def body(request: httpx.Request) -> Any:
        return json.loads(request.content) if request.content else None


# ============================================================================
# Admin data layer
# ============================================================================


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def api_client(backend: FakeBackend) -> ApiClient:
    return ApiClient(base_url=GATEWAY_URL, transport=backend.transport())


@pytest.fixture
def cache() -> QueryCache:
    return QueryCache(stale_time=300, gc_time=600)


@pytest.fixture
def session(api_client: ApiClient, cache: QueryCache) -> AdminSession:
    return AdminSession(api_client, cache)


# ============================================================================
# Gateway
# ============================================================================


@pytest.fixture
def wordpress(monkeypatch) -> FakeBackend:
    """Point the shared WordPress client at a FakeBackend"""
    fake = FakeBackend(prefix="/wp-json")
    monkeypatch.setattr(wp_client, "transport", fake.transport())
    monkeypatch.setattr(wp_client, "_base_url", WP_URL)
    return fake


@pytest.fixture
def http_client() -> TestClient:
    # No context manager: the lifespan (scheduler, health poll) stays off
    return TestClient(app)
