"""Helpers shared by CLI commands."""

from __future__ import annotations

from litefs_monitor.client import LiteFSClient
from litefs_monitor.config import settings
from litefs_monitor.observability.logging import configure_logging


def make_client(url: str) -> LiteFSClient:
    """Build the client used by CLI commands."""
    return LiteFSClient(url)


def setup_logging(log_level: str | None) -> None:
    configure_logging(
        json_format=settings.log_json,
        level=log_level or settings.log_level,
    )
