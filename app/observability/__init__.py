"""Observability helpers: structlog JSON logging and in-memory metrics.

Request telemetry (the analytics events) lives in ``app.telemetry``; this
package only covers the service's own logs and counters.
"""

from app.observability.logging import configure_logging
from app.observability.metrics import get_metrics, reset_metrics

__all__ = ["configure_logging", "get_metrics", "reset_metrics"]
