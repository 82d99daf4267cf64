"""Tests for logging and metrics."""

import json
import logging

import pytest
from prometheus_client import CollectorRegistry

from litefs_monitor.observability.logging import (
    ConsoleFormatter,
    JsonFormatter,
    LogContext,
    configure_logging,
    node_var,
)
from litefs_monitor.observability import metrics as metrics_module
from litefs_monitor.observability.metrics import MetricsRegistry, set_is_primary


def _record(message: str, **extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="litefs_monitor.monitor",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter:
    """Test JSON log output."""

    def test_basic_fields(self) -> None:
        """Lines are JSON objects with level, logger and message."""
        data = json.loads(JsonFormatter().format(_record("Primary is node-1")))
        assert data["level"] == "INFO"
        assert data["logger"] == "litefs_monitor.monitor"
        assert data["message"] == "Primary is node-1"
        assert "node" not in data

    def test_node_context(self) -> None:
        """LogContext adds the node URL."""
        with LogContext(node="http://localhost:20202"):
            data = json.loads(JsonFormatter().format(_record("Subscribed")))
        assert data["node"] == "http://localhost:20202"
        assert node_var.get() == ""

    def test_extra_fields(self) -> None:
        """Fields passed via extra= are included."""
        data = json.loads(
            JsonFormatter().format(_record("changed", is_primary=True, primary_hostname="n"))
        )
        assert data["is_primary"] is True
        assert data["primary_hostname"] == "n"


class TestConsoleFormatter:
    """Test console log output."""

    def test_format(self) -> None:
        """Console lines contain the level, logger, message and node."""
        with LogContext(node="http://node-1:20202"):
            line = ConsoleFormatter(use_colors=False).format(_record("Subscribed"))
        assert "INFO" in line
        assert "litefs_monitor.monitor" in line
        assert "Subscribed" in line
        assert "node=http://node-1:20202" in line


class TestConfigureLogging:
    """Test root logger setup."""

    @pytest.fixture(autouse=True)
    def restore_root(self):
        """Restore the root logger after each test."""
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_json_handler(self) -> None:
        """JSON format installs a single JSON handler."""
        configure_logging(json_format=True, level="debug")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_console_handler(self) -> None:
        """Console format installs the console formatter."""
        configure_logging(json_format=False, level="INFO")
        assert isinstance(logging.getLogger().handlers[0].formatter, ConsoleFormatter)


class TestMetricsRegistry:
    """Test Prometheus collectors."""

    def test_collectors_exported(self) -> None:
        """Registered collectors appear in the exposition output."""
        registry = CollectorRegistry()
        metrics = MetricsRegistry()
        metrics.initialize(registry)

        metrics.events_received_total.labels(type="init").inc()
        metrics.subscription_errors_total.labels(error="UnexpectedStatusError").inc()
        metrics.subscription_connects_total.inc()
        metrics.is_primary.labels(node="http://node-1:20202").set(1)

        output = metrics.generate_latest().decode()
        assert 'litefs_events_received_total{type="init"} 1.0' in output
        assert 'litefs_subscription_errors_total{error="UnexpectedStatusError"} 1.0' in output
        assert "litefs_subscription_connects_total 1.0" in output
        assert 'litefs_is_primary{node="http://node-1:20202"} 1.0' in output

    def test_initialize_is_idempotent(self) -> None:
        """Initializing twice does not register collectors twice."""
        registry = CollectorRegistry()
        metrics = MetricsRegistry()
        metrics.initialize(registry)
        metrics.initialize(registry)

    def test_uninitialized_output(self) -> None:
        """Without a registry there is nothing to export."""
        assert MetricsRegistry().generate_latest() == b"# Metrics disabled\n"

    def test_primary_flag_per_node(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Monitors watching different nodes publish separate series."""
        registry = CollectorRegistry()
        metrics = MetricsRegistry()
        metrics.initialize(registry)
        monkeypatch.setattr(metrics_module, "metrics_registry", metrics)

        set_is_primary("http://node-1:20202", True)
        set_is_primary("http://node-2:20202", False)

        output = metrics.generate_latest().decode()
        assert 'litefs_is_primary{node="http://node-1:20202"} 1.0' in output
        assert 'litefs_is_primary{node="http://node-2:20202"} 0.0' in output
