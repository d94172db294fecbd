"""Per-request analytics events (Glean ``backend.object_update``)."""

from app.telemetry.events import build_event, derive_handle, to_record
from app.telemetry.glean import GleanEventsLogger
from app.telemetry.middleware import RequestTelemetryMiddleware
from app.telemetry.sink import EventSink, NullEventSink, QueueingEventSink
from app.telemetry.wrapper import RequestTelemetryWrapper, ResponseRecorder

__all__ = [
    "EventSink",
    "GleanEventsLogger",
    "NullEventSink",
    "QueueingEventSink",
    "RequestTelemetryMiddleware",
    "RequestTelemetryWrapper",
    "ResponseRecorder",
    "build_event",
    "derive_handle",
    "to_record",
]
