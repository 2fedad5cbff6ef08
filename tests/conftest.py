"""
Shared fixtures for the payment service tests.

Outbound HTTP (Midtrans and Supabase) never leaves the process: both
clients are built on an httpx.MockTransport that records every request
and answers from a small route table.
"""
import json
from typing import Callable, Dict, List, Tuple, Union

import httpx
import pytest
from fastapi.testclient import TestClient

from shared.utils import Settings, get_settings
from shared.dependencies import get_gateway, get_order_store
from shared.midtrans import MidtransClient
from shared.order_store import OrderStore
from shared.security_config import limiter

SERVER_KEY = "SB-Mid-server-test-key"
SUPABASE_URL = "https://project-ref.supabase.co"
SERVICE_ROLE_KEY = "service-role-key"

SNAP_HOST = "app.sandbox.midtrans.com"
API_HOST = "api.sandbox.midtrans.com"
STORE_HOST = "project-ref.supabase.co"

RouteReply = Union[Tuple[int, object], Callable[[httpx.Request], httpx.Response]]


class FakeHTTP:
    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.routes: Dict[Tuple[str, str], RouteReply] = {}

    def reply(self, method: str, host: str, status_code: int = 200, body: object = None):
        self.routes[(method, host)] = (status_code, body)

    def fail(self, method: str, host: str, exc: Exception):
        def raiser(request):
            raise exc
        self.routes[(method, host)] = raiser

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.host))
        if route is None:
            return httpx.Response(500, json={"error": f"unexpected {request.method} {request.url}"})
        if callable(route):
            return route(request)
        status_code, body = route
        if body is None:
            return httpx.Response(status_code)
        return httpx.Response(status_code, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls(self, host: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.host == host]

    def store_writes(self) -> List[dict]:
        return [json.loads(r.content) for r in self.calls(STORE_HOST) if r.method == "PATCH"]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        MIDTRANS_SERVER_KEY=SERVER_KEY,
        SUPABASE_URL=SUPABASE_URL,
        SUPABASE_SERVICE_ROLE_KEY=SERVICE_ROLE_KEY,
    )


@pytest.fixture
def fake_http() -> FakeHTTP:
    return FakeHTTP()


@pytest.fixture(autouse=True)
def reset_rate_limits():
    limiter.reset()
    yield


def _client_for(app, settings: Settings, fake_http: FakeHTTP):
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_gateway] = lambda: MidtransClient(settings, transport=fake_http.transport)
    app.dependency_overrides[get_order_store] = lambda: OrderStore(settings, transport=fake_http.transport)
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def checkout_client(settings, fake_http):
    from services.checkout_service.app.main import app
    yield from _client_for(app, settings, fake_http)


@pytest.fixture
def notification_client(settings, fake_http):
    from services.notification_service.app.main import app
    yield from _client_for(app, settings, fake_http)
