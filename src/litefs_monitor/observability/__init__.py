"""Observability module for the LiteFS client.

Provides:
- Structured logging (JSON or console) with node context
- Prometheus metrics for the event stream and leadership state
"""

from litefs_monitor.observability.logging import (
    ConsoleFormatter,
    JsonFormatter,
    LogContext,
    configure_logging,
)
from litefs_monitor.observability.metrics import MetricsRegistry, get_metrics

__all__ = [
    "ConsoleFormatter",
    "JsonFormatter",
    "LogContext",
    "MetricsRegistry",
    "configure_logging",
    "get_metrics",
]
