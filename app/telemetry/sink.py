from __future__ import annotations

import queue
import threading
from typing import Protocol

import structlog

from app.models.schemas import TelemetryEvent
from app.observability.metrics import get_metrics


logger = structlog.get_logger("telemetry")

_STOP = object()


class EventSink(Protocol):
    def emit(self, event: TelemetryEvent) -> None: ...
    def close(self) -> None: ...


class NullEventSink:
    """Discards events (telemetry disabled)."""

    def emit(self, event: TelemetryEvent) -> None:
        _ = event

    def close(self) -> None:
        return None


class QueueingEventSink:
    """Fire-and-forget front for a slower sink.

    ``emit`` only enqueues; a daemon thread hands events to the inner sink.
    When the queue is full the event is dropped and counted. Inner sink
    failures are logged and counted, never raised. An event counts as emitted
    once the inner sink has accepted it.
    """

    counts_delivery = True

    def __init__(self, inner: EventSink, *, maxsize: int = 1000, flush_timeout: float = 5.0) -> None:
        self.inner = inner
        self.flush_timeout = flush_timeout
        self._queue: queue.Queue[object] = queue.Queue(maxsize=maxsize)
        self._thread: threading.Thread | None = None
        # Guards _closed together with enqueueing, so nothing lands behind _STOP.
        self._lock = threading.Lock()
        self._closed = False

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        with self._lock:
            self._closed = False
        self._thread = threading.Thread(target=self._loop, name="telemetry-sink", daemon=True)
        self._thread.start()
        logger.info("telemetry_sink_started", inner=type(self.inner).__name__)

    def emit(self, event: TelemetryEvent) -> None:
        with self._lock:
            if self._closed:
                reason = "closed"
            else:
                try:
                    self._queue.put_nowait(event)
                    return
                except queue.Full:
                    reason = "queue_full"
        get_metrics().observe_telemetry_dropped()
        logger.warning("telemetry_event_dropped", reason=reason, path=event.path)

    def close(self) -> None:
        """Stop accepting events, drain what is queued, then close the inner sink."""

        with self._lock:
            if self._closed:
                return
            self._closed = True
        thread = self._thread
        if thread is not None and thread.is_alive():
            try:
                self._queue.put(_STOP, timeout=self.flush_timeout)
            except queue.Full:
                logger.warning("telemetry_sink_flush_timeout", pending=self._queue.qsize())
            thread.join(timeout=self.flush_timeout)
            if thread.is_alive():
                logger.warning("telemetry_sink_flush_timeout", pending=self._queue.qsize())
        else:
            self._drain()
        try:
            self.inner.close()
        except Exception:
            logger.exception("telemetry_sink_close_failed")
        logger.info("telemetry_sink_closed")

    def _loop(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            self._deliver(item)  # type: ignore[arg-type]

    def _drain(self) -> None:
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return
            if item is not _STOP:
                self._deliver(item)  # type: ignore[arg-type]

    def _deliver(self, event: TelemetryEvent) -> None:
        try:
            self.inner.emit(event)
        except Exception as exc:  # noqa: BLE001
            get_metrics().observe_telemetry_failure()
            logger.warning("telemetry_emit_failed", error=str(exc), error_type=type(exc).__name__)
            return
        get_metrics().observe_telemetry_emitted()
