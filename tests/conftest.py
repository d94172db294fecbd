from __future__ import annotations

from collections.abc import AsyncIterator
from threading import Lock

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from app.api.errors import (
    InvalidAuthenticityTokenError,
    MalformedInputError,
    NotFoundError,
    NotPermittedError,
    RaceConditionError,
    RateLimitExceededError,
    ServiceOverloadedError,
    UnacceptableFormatError,
    UpstreamNetworkError,
    UpstreamStorageError,
)
from app.config import Settings, get_settings
from app.main import create_app
from app.models.schemas import Principal, TelemetryEvent
from app.observability.metrics import reset_metrics
from app.services.auth_service import create_session_token


class RecordingSink:
    def __init__(self) -> None:
        self._lock = Lock()
        self.events: list[TelemetryEvent] = []
        self.closed = False

    def emit(self, event: TelemetryEvent) -> None:
        with self._lock:
            self.events.append(event)

    def close(self) -> None:
        self.closed = True


class FailingSink:
    def __init__(self) -> None:
        self.calls = 0

    def emit(self, event: TelemetryEvent) -> None:
        _ = event
        self.calls += 1
        raise ConnectionError("analytics backend unavailable")

    def close(self) -> None:
        raise ConnectionError("analytics backend unavailable")


BOOM_ERRORS = {
    "malformed": MalformedInputError,
    "forbidden": NotPermittedError,
    "missing": NotFoundError,
    "format": UnacceptableFormatError,
    "csrf": InvalidAuthenticityTokenError,
    "throttled": RateLimitExceededError,
    "upstream": UpstreamNetworkError,
    "storage": UpstreamStorageError,
    "race": RaceConditionError,
    "overloaded": ServiceOverloadedError,
}


def add_test_routes(app: FastAPI) -> None:
    @app.get("/boom/unmapped")
    async def boom_unmapped() -> dict:
        raise RuntimeError("kaboom")

    @app.get("/boom/{kind}")
    async def boom(kind: str) -> dict:
        raise BOOM_ERRORS[kind](kind)

    @app.get("/items/{item_id}")
    async def show_item(item_id: int) -> dict:
        return {"id": item_id}


@pytest.fixture(autouse=True)
def test_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    monkeypatch.setenv("DEFAULT_HANDLE_DOMAIN", "mozilla.social")
    get_settings.cache_clear()
    reset_metrics()

    yield

    get_settings.cache_clear()
    reset_metrics()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def app(sink: RecordingSink) -> FastAPI:
    application = create_app(sink=sink)
    add_test_routes(application)
    return application


@pytest.fixture
async def api_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app, client=("203.0.113.7", 51234))
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def login(client: AsyncClient, principal: Principal, settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    client.cookies.set(settings.jwt_cookie_name, create_session_token(principal, settings))
