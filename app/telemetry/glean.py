"""Glean server-side event logger.

Each emitted event becomes one JSON line shaped the way the Glean ingestion
pipeline expects server-side pings::

    {"Timestamp": ..., "Logger": "glean", "Type": "glean-server-event",
     "Fields": {"document_namespace": ..., "document_type": "events", ...,
                "payload": "<json string>"}}

The payload carries the identifier string metrics, a single
``backend.object_update`` event and the ``client_info`` block.
"""

from __future__ import annotations

import json
import sys
import time
import uuid
from datetime import datetime, timezone
from threading import Lock
from typing import Any, TextIO

from app.models.schemas import TelemetryEvent
from app.telemetry.events import to_record


LOGGER_NAME = "glean"
ENTRY_TYPE = "glean-server-event"
DOCUMENT_TYPE = "events"
DOCUMENT_VERSION = "1"
EVENT_CATEGORY = "backend"
EVENT_NAME = "object_update"

_IDENTIFIER_FIELDS = (
    "adjust_device_id",
    "fxa_account_id",
    "mastodon_account_handle",
    "mastodon_account_id",
    "user_agent",
)


def _as_string_metric(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


class GleanEventsLogger:
    """Writes backend object_update events as Glean ping lines to a stream.

    Writes are serialized by a lock, so one instance can be shared by every
    request handler in the process.
    """

    def __init__(
        self,
        *,
        app_id: str,
        app_display_version: str,
        app_channel: str,
        stream: TextIO | None = None,
    ) -> None:
        self.app_id = app_id
        self.app_display_version = app_display_version
        self.app_channel = app_channel
        self._stream = stream if stream is not None else sys.stdout
        self._lock = Lock()

    def emit(self, event: TelemetryEvent) -> None:
        line = json.dumps(self.build_entry(event), separators=(",", ":"))
        with self._lock:
            self._stream.write(line + "\n")
            self._stream.flush()

    def close(self) -> None:
        with self._lock:
            self._stream.flush()

    def build_entry(self, event: TelemetryEvent) -> dict[str, Any]:
        record = to_record(event)
        now = datetime.now(timezone.utc)
        now_iso = now.isoformat()

        string_metrics = {
            f"identifiers.{name}": _as_string_metric(record[f"identifiers_{name}"]) for name in _IDENTIFIER_FIELDS
        }
        payload = {
            "metrics": {"string": string_metrics},
            "events": [
                {
                    "category": EVENT_CATEGORY,
                    "name": EVENT_NAME,
                    "timestamp": int(now.timestamp() * 1000),
                    "extra": {
                        "object_type": record["object_type"],
                        "object_state": record["object_state"],
                    },
                }
            ],
            "ping_info": {"seq": 0, "start_time": now_iso, "end_time": now_iso},
            "client_info": {
                "telemetry_sdk_build": "request-telemetry",
                "first_run_date": "Unknown",
                "os": "Unknown",
                "os_version": "Unknown",
                "architecture": "Unknown",
                "app_build": "Unknown",
                "app_display_version": self.app_display_version,
                "app_channel": self.app_channel,
            },
        }
        return {
            "Timestamp": time.time_ns(),
            "Logger": LOGGER_NAME,
            "Type": ENTRY_TYPE,
            "Fields": {
                "document_namespace": self.app_id,
                "document_type": DOCUMENT_TYPE,
                "document_version": DOCUMENT_VERSION,
                "document_id": str(uuid.uuid4()),
                "user_agent": record["user_agent"],
                "ip_address": record["ip_address"],
                "payload": json.dumps(payload, separators=(",", ":")),
            },
        }
