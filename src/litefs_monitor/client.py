"""HTTP client for a LiteFS node.

Wraps an ``httpx.AsyncClient`` pointed at a node's HTTP API and builds
event subscriptions and primary monitors on top of it.

Example:
    async with LiteFSClient("http://localhost:20202") as client:
        monitor = await client.monitor_primary()
        await monitor.wait_ready(timeout=5)
        if monitor.is_primary():
            ...
        await monitor.close()
"""

from __future__ import annotations

import logging
from types import TracebackType

import httpx

from litefs_monitor.config import Settings, settings
from litefs_monitor.monitor import PrimaryMonitor
from litefs_monitor.subscription import EventSubscription

logger = logging.getLogger(__name__)

DEFAULT_URL = "http://localhost:20202"
EVENTS_PATH = "/events"


def _build_timeout(connect: float, read: float | None) -> httpx.Timeout:
    # Event streams stay quiet between heartbeats; only bound the connect
    return httpx.Timeout(connect=connect, read=read, write=connect, pool=connect)


class LiteFSClient:
    """Client for communicating with one LiteFS node.

    Args:
        url: Base URL of the node (default http://localhost:20202)
        http: HTTP client to use; one is created (and owned) if None
        events_path: Path of the event stream endpoint
        retry_backoff: Delay between consecutive subscription failures for
            monitors created by this client (settings default if None)
        timeout: Timeout for a created HTTP client (settings default if None)
    """

    def __init__(
        self,
        url: str = DEFAULT_URL,
        http: httpx.AsyncClient | None = None,
        *,
        events_path: str = EVENTS_PATH,
        retry_backoff: float | None = None,
        timeout: httpx.Timeout | None = None,
    ):
        self.url = url.rstrip("/")
        self.events_path = events_path
        self.retry_backoff = settings.retry_backoff if retry_backoff is None else retry_backoff
        self._owns_http = http is None
        self.http = http or httpx.AsyncClient(
            timeout=timeout or _build_timeout(settings.connect_timeout, settings.read_timeout)
        )

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> LiteFSClient:
        """Build a client from settings (environment / .env by default)."""
        config = config or settings
        return cls(
            config.url,
            events_path=config.events_path,
            retry_backoff=config.retry_backoff,
            timeout=_build_timeout(config.connect_timeout, config.read_timeout),
        )

    @property
    def owns_http(self) -> bool:
        return self._owns_http

    def subscribe_events(self) -> EventSubscription:
        """Subscribe to events from the node.

        No request is made until the first call to ``next()``.
        """
        return EventSubscription(self, self.events_path)

    async def monitor_primary(self) -> PrimaryMonitor:
        """Start monitoring the cluster's primary via the node's event stream."""
        monitor = PrimaryMonitor(
            self.subscribe_events(),
            retry_backoff=self.retry_backoff,
            node=self.url,
        )
        await monitor.start()
        return monitor

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this client created it."""
        if self._owns_http:
            await self.http.aclose()

    async def __aenter__(self) -> LiteFSClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()


# Module-level default client
_default_client: LiteFSClient | None = None


def get_default_client() -> LiteFSClient:
    """Get or create the default client for the local node.

    Configured from ``LITEFS_*`` settings (http://localhost:20202 unless
    overridden).
    """
    global _default_client
    if _default_client is None:
        _default_client = LiteFSClient.from_settings()
    return _default_client


async def close_default_client() -> None:
    """Close the default client."""
    global _default_client
    if _default_client is not None:
        await _default_client.aclose()
        _default_client = None


async def monitor_primary() -> PrimaryMonitor:
    """Monitor the primary through the default client."""
    return await get_default_client().monitor_primary()
