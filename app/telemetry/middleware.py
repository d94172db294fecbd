from __future__ import annotations

import uuid
from time import perf_counter
from typing import Any, Callable

import structlog
from starlette.datastructures import Headers, MutableHeaders

from app.api.errors import error_response
from app.models.schemas import Principal, RequestContext
from app.observability.metrics import get_metrics
from app.telemetry.wrapper import RequestTelemetryWrapper


REQUEST_ID_HEADER = "X-Request-ID"


def _full_path(scope: dict[str, Any]) -> str:
    path = scope.get("path") or "/"
    query_string = scope.get("query_string") or b""
    if query_string:
        return f"{path}?{query_string.decode('latin-1')}"
    return path


def _handler_name(scope: dict[str, Any]) -> str | None:
    route = scope.get("route")
    name = getattr(route, "name", None)
    if name:
        return name
    endpoint = scope.get("endpoint")
    return getattr(endpoint, "__name__", None)


def _client_ip(scope: dict[str, Any], headers: Headers, trust_forwarded_for: bool) -> str | None:
    if trust_forwarded_for:
        forwarded = headers.get("x-forwarded-for")
        if forwarded:
            first_hop = forwarded.split(",")[0].strip()
            if first_hop:
                return first_hop
    client = scope.get("client")
    if client:
        return client[0]
    return None


def request_context_from_scope(scope: dict[str, Any], *, trust_forwarded_for: bool = False) -> RequestContext:
    headers = Headers(scope=scope)
    principal = (scope.get("state") or {}).get("principal")
    return RequestContext(
        method=scope.get("method", "GET"),
        path=_full_path(scope),
        client_ip=_client_ip(scope, headers, trust_forwarded_for),
        user_agent=headers.get("user-agent"),
        principal=principal if isinstance(principal, Principal) else None,
        handler_name=_handler_name(scope),
    )


class RequestTelemetryMiddleware:
    """Request id, access log, HTTP metrics, default cache headers and telemetry."""

    def __init__(
        self,
        app: Callable[..., Any],
        telemetry: RequestTelemetryWrapper,
        *,
        trust_forwarded_for: bool = False,
        cache_control_default: str | None = "private, no-store",
    ) -> None:
        self.app = app
        self.telemetry = telemetry
        self.trust_forwarded_for = trust_forwarded_for
        self.cache_control_default = cache_control_default
        # Metrics endpoints are not counted in latency metrics; they still emit telemetry.
        self._excluded_metric_paths = {"/api/metrics", "/metrics"}

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        # Share one state dict with request.state so the principal set by auth is visible here.
        scope.setdefault("state", {})

        request_id = str(uuid.uuid4())
        path = scope.get("path")
        method = scope.get("method")

        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=path,
            method=method,
        )

        start = perf_counter()
        status_code: int = 500
        response_started = False

        def context_factory() -> RequestContext:
            return request_context_from_scope(scope, trust_forwarded_for=self.trust_forwarded_for)

        try:
            with self.telemetry.observe(context_factory) as recorder:

                async def send_wrapper(message: dict[str, Any]) -> None:
                    nonlocal status_code, response_started

                    if message.get("type") == "http.response.start":
                        response_started = True
                        status_code = int(message.get("status", 500))
                        recorder.record_status(status_code)
                        headers = MutableHeaders(scope=message)
                        headers[REQUEST_ID_HEADER] = request_id
                        if self.cache_control_default and "cache-control" not in headers:
                            headers["Cache-Control"] = self.cache_control_default

                    await send(message)

                try:
                    await self.app(scope, receive, send_wrapper)
                except Exception:
                    # Answer unmapped errors here so the 500 carries our headers; the outer
                    # ServerErrorMiddleware sees the response as started and only re-raises.
                    if not response_started:
                        await self._send_server_error(scope, receive, send_wrapper)
                    raise
        finally:
            elapsed_ms = (perf_counter() - start) * 1000.0

            if path not in self._excluded_metric_paths:
                get_metrics().observe_http_request(elapsed_ms=elapsed_ms)

            structlog.get_logger("access").info(
                "http_request",
                status_code=status_code,
                elapsed_ms=round(elapsed_ms, 2),
            )

            structlog.contextvars.clear_contextvars()

    async def _send_server_error(
        self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]
    ) -> None:
        try:
            await error_response(500)(scope, receive, send)
        except Exception as exc:  # noqa: BLE001
            structlog.get_logger("access").warning("error_response_failed", error=str(exc))
