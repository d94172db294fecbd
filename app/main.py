from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from app.api.accounts import router as accounts_router
from app.api.errors import install_error_handlers
from app.api.metrics import router as metrics_router
from app.config import Settings, get_settings
from app.observability import configure_logging
from app.telemetry.glean import GleanEventsLogger
from app.telemetry.middleware import RequestTelemetryMiddleware
from app.telemetry.sink import EventSink, NullEventSink, QueueingEventSink
from app.telemetry.wrapper import RequestTelemetryWrapper


def build_event_sink(settings: Settings) -> EventSink:
    if not settings.telemetry_enabled:
        return NullEventSink()
    glean = GleanEventsLogger(
        app_id=settings.app_id,
        app_display_version=settings.app_display_version,
        app_channel=settings.app_channel,
    )
    return QueueingEventSink(
        glean,
        maxsize=settings.telemetry_queue_size,
        flush_timeout=settings.telemetry_flush_timeout_seconds,
    )


def create_app(settings: Settings | None = None, sink: EventSink | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    event_sink = sink if sink is not None else build_event_sink(settings)
    telemetry = RequestTelemetryWrapper(event_sink, default_domain=settings.default_handle_domain)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        if isinstance(event_sink, QueueingEventSink):
            event_sink.start()
        structlog.get_logger("app").info("startup", app_id=settings.app_id, channel=settings.app_channel)
        try:
            yield
        finally:
            event_sink.close()

    app = FastAPI(title="Request Telemetry", version=settings.app_display_version, lifespan=lifespan)
    app.state.settings = settings
    app.state.telemetry = telemetry
    install_error_handlers(app)
    app.add_middleware(
        RequestTelemetryMiddleware,
        telemetry=telemetry,
        trust_forwarded_for=settings.trust_forwarded_for,
        cache_control_default=settings.cache_control_default or None,
    )
    app.include_router(accounts_router)
    app.include_router(metrics_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
