"""Structured logging for the LiteFS client.

Provides:
- JSON-formatted logs for log aggregation systems (ELK, Loki, etc.)
- A human-readable console format for interactive use
- Node context propagation, so lines from a monitor's background task carry
  the URL of the LiteFS node it is watching

Usage:
    from litefs_monitor.observability.logging import configure_logging

    configure_logging(json_format=True, level="INFO")

    logger = logging.getLogger(__name__)
    with LogContext(node="http://localhost:20202"):
        logger.info("Subscribed")  # Includes node
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

node_var: contextvars.ContextVar[str] = contextvars.ContextVar("node", default="")

# LogRecord attributes that are not user-supplied extras
_STANDARD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)


class JsonFormatter(logging.Formatter):
    """JSON log formatter with node context support.

    Output format:
    {
        "timestamp": "2026-01-10T12:34:56.789Z",
        "level": "INFO",
        "logger": "litefs_monitor.monitor",
        "message": "Primary changed",
        "module": "monitor",
        "function": "_apply_event",
        "line": 42,
        "node": "http://localhost:20202",
        "hostname": "node-2"
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        node = node_var.get()
        if node:
            log_data["node"] = node

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                try:
                    json.dumps(value)
                    log_data[key] = value
                except (TypeError, ValueError):
                    log_data[key] = str(value)

        return json.dumps(log_data, default=str, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter for interactive use.

    Output format:
    2026-01-10 12:34:56 | INFO | litefs_monitor.monitor | Primary changed | node=http://...
    """

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        """Format log record for console output."""
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        level = record.levelname

        if self.use_colors:
            color = self.COLORS.get(level, "")
            level = f"{color}{level}{self.RESET}"

        message = record.getMessage()
        node = node_var.get()
        context = f" | node={node}" if node else ""

        result = f"{timestamp} | {level:8} | {record.name} | {message}{context}"

        if record.exc_info:
            result += "\n" + self.formatException(record.exc_info)

        return result


def configure_logging(
    json_format: bool = True,
    level: str = "INFO",
    use_colors: bool = True,
) -> None:
    """Configure application-wide logging.

    Args:
        json_format: Use JSON format (recommended for production)
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        use_colors: Use ANSI colors in console format
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)

    if json_format:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(ConsoleFormatter(use_colors=use_colors))

    root_logger.addHandler(handler)

    # Every reconnect is an HTTP request; keep the transport quiet
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


class LogContext:
    """Context manager that tags log lines with the LiteFS node being watched.

    Usage:
        with LogContext(node="http://localhost:20202"):
            logger.info("Subscribed")
    """

    def __init__(self, node: str) -> None:
        self.node = node
        self._token: contextvars.Token[str] | None = None

    def __enter__(self) -> "LogContext":
        self._token = node_var.set(self.node)
        return self

    def __exit__(self, *args: Any) -> None:
        if self._token is not None:
            node_var.reset(self._token)
            self._token = None
