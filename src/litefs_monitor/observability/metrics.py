"""Prometheus metrics for the LiteFS client.

Provides:
- Event counts by type
- Subscription error counts by error class
- Connection attempts on the event stream
- The last known primary flag per watched node

Usage:
    from litefs_monitor.observability.metrics import get_metrics

    metrics = get_metrics()
    metrics.events_received_total.labels(type="init").inc()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, generate_latest

from litefs_monitor.config import settings

logger = logging.getLogger(__name__)


@dataclass
class MetricsRegistry:
    """Registry for Prometheus metrics."""

    events_received_total: Any = None
    subscription_errors_total: Any = None
    subscription_connects_total: Any = None
    is_primary: Any = None

    # Internal state
    _initialized: bool = field(default=False, repr=False)
    _registry: CollectorRegistry | None = field(default=None, repr=False)

    def initialize(self, registry: CollectorRegistry = REGISTRY) -> None:
        """Initialize Prometheus metrics."""
        if self._initialized:
            return

        if not settings.enable_metrics:
            logger.info("Metrics are disabled")
            self._initialized = True
            return

        self._registry = registry

        self.events_received_total = Counter(
            "litefs_events_received_total",
            "Events read from the LiteFS event stream",
            ["type"],
            registry=registry,
        )

        self.subscription_errors_total = Counter(
            "litefs_subscription_errors_total",
            "Failed reads from the LiteFS event stream",
            ["error"],
            registry=registry,
        )

        self.subscription_connects_total = Counter(
            "litefs_subscription_connects_total",
            "Connections opened to the LiteFS event stream",
            registry=registry,
        )

        self.is_primary = Gauge(
            "litefs_is_primary",
            "Whether the watched node is the primary (1) or a replica (0)",
            ["node"],
            registry=registry,
        )

        self._initialized = True
        logger.debug("Prometheus metrics initialized")

    def generate_latest(self) -> bytes:
        """Generate Prometheus metrics in exposition format."""
        if self._registry is None:
            return b"# Metrics disabled\n"
        return generate_latest(self._registry)


# Global metrics registry
metrics_registry = MetricsRegistry()


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry.

    Initializes metrics on first access.
    """
    if not metrics_registry._initialized:
        metrics_registry.initialize()
    return metrics_registry


def record_event(event_type: str) -> None:
    """Record an event read from the stream."""
    metrics = get_metrics()
    if metrics.events_received_total is not None:
        metrics.events_received_total.labels(type=event_type or "unknown").inc()


def record_subscription_error(error: BaseException) -> None:
    """Record a failed read, labelled by exception class."""
    metrics = get_metrics()
    if metrics.subscription_errors_total is not None:
        metrics.subscription_errors_total.labels(error=type(error).__name__).inc()


def record_connect() -> None:
    """Record a new connection to the event stream."""
    metrics = get_metrics()
    if metrics.subscription_connects_total is not None:
        metrics.subscription_connects_total.inc()


def set_is_primary(node: str, is_primary: bool) -> None:
    """Publish the last known primary flag of a watched node."""
    metrics = get_metrics()
    if metrics.is_primary is not None:
        metrics.is_primary.labels(node=node).set(1 if is_primary else 0)
