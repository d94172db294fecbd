"""Request telemetry wrapper.

Every observed request produces exactly one ``TelemetryEvent``: the
finalization step runs in a ``finally`` block, so it fires on normal return,
on an exception, and on cancellation. The handler's own result or exception
is passed through untouched; failures while building or emitting the event
are logged and swallowed.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, TypeVar

import structlog

from app.api.errors import status_for_exception
from app.models.schemas import RequestContext, ResponseOutcome
from app.observability.metrics import get_metrics
from app.telemetry.events import build_event
from app.telemetry.sink import EventSink


T = TypeVar("T")

CLIENT_DISCONNECTED_STATUS = 499
CLIENT_DISCONNECTED = "client_disconnected"
UNHANDLED_ERROR_STATUS = 500
DEFAULT_STATUS = 200

logger = structlog.get_logger("telemetry")


@dataclass
class ResponseRecorder:
    """Per-request scratchpad filled in while the handler runs."""

    status_code: int | None = None
    error: BaseException | None = None
    cancelled: bool = False

    def record_status(self, status_code: int) -> None:
        self.status_code = int(status_code)

    def record_result(self, result: Any) -> None:
        status_code = getattr(result, "status_code", None)
        if isinstance(status_code, int):
            self.record_status(status_code)

    def outcome(self) -> ResponseOutcome:
        error_kind = None
        if self.cancelled:
            error_kind = CLIENT_DISCONNECTED
        elif self.error is not None:
            error_kind = type(self.error).__name__

        if self.status_code is not None:
            return ResponseOutcome(status_code=self.status_code, error_kind=error_kind)
        if self.cancelled:
            return ResponseOutcome(status_code=CLIENT_DISCONNECTED_STATUS, error_kind=error_kind)
        if self.error is not None:
            mapped = status_for_exception(self.error)
            return ResponseOutcome(
                status_code=mapped if mapped is not None else UNHANDLED_ERROR_STATUS,
                error_kind=error_kind,
            )
        return ResponseOutcome(status_code=DEFAULT_STATUS)


class RequestTelemetryWrapper:
    """Wraps request handling and emits one event per request to ``sink``."""

    def __init__(self, sink: EventSink, *, default_domain: str) -> None:
        self.sink = sink
        self.default_domain = default_domain

    @contextmanager
    def observe(self, context_factory: Callable[[], RequestContext]) -> Iterator[ResponseRecorder]:
        """Scope one request; the event is emitted when the block exits.

        ``context_factory`` is called at exit so that anything resolved while
        the handler ran (the principal, the matched route) is visible.
        """

        recorder = ResponseRecorder()
        try:
            yield recorder
        except asyncio.CancelledError:
            recorder.cancelled = True
            raise
        except BaseException as exc:
            recorder.error = exc
            raise
        finally:
            self._finalize(context_factory, recorder)

    def run(self, context_factory: Callable[[], RequestContext], delegate: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        with self.observe(context_factory) as recorder:
            result = delegate(*args, **kwargs)
            recorder.record_result(result)
            return result

    async def arun(
        self,
        context_factory: Callable[[], RequestContext],
        delegate: Callable[..., Awaitable[T]],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        with self.observe(context_factory) as recorder:
            result = await delegate(*args, **kwargs)
            recorder.record_result(result)
            return result

    def _finalize(self, context_factory: Callable[[], RequestContext], recorder: ResponseRecorder) -> None:
        try:
            context = context_factory()
            event = build_event(context, recorder.outcome(), default_domain=self.default_domain)
            self.sink.emit(event)
        except Exception as exc:  # noqa: BLE001
            get_metrics().observe_telemetry_failure()
            logger.warning("telemetry_emit_failed", error=str(exc), error_type=type(exc).__name__)
            return
        # Buffering sinks count an event when it is delivered (or dropped), not when queued.
        if not getattr(self.sink, "counts_delivery", False):
            get_metrics().observe_telemetry_emitted()
