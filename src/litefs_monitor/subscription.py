"""Subscription to a LiteFS node's event stream.

An EventSubscription presents a sequence of HTTP requests as one pull-based
stream of events. A connection is opened on demand by ``next()`` and dropped
after any failure; the following ``next()`` call reconnects. There is no
internal retry or backoff, retry cadence belongs to the caller.

Example:
    async with client.subscribe_events() as subscription:
        while True:
            try:
                event = await subscription.next()
            except SubscriptionClosedError:
                break
            except SubscriptionError as e:
                logger.warning(f"Event stream failed: {e}")
                continue
            handle(event)
"""

from __future__ import annotations

import asyncio
import logging
from types import TracebackType
from typing import TYPE_CHECKING

import httpx

from litefs_monitor.errors import (
    SubscriptionClosedError,
    SubscriptionError,
    TransportError,
    TruncatedStreamError,
    UnexpectedStatusError,
)
from litefs_monitor.events import Event, EventDecoder
from litefs_monitor.observability.metrics import record_connect

if TYPE_CHECKING:
    from litefs_monitor.client import LiteFSClient

logger = logging.getLogger(__name__)


class EventSubscription:
    """Reads events published by a LiteFS node.

    ``next()`` must not be called concurrently with itself. ``close()`` may be
    called from another task at any time and unblocks a pending ``next()``,
    which then raises SubscriptionClosedError.
    """

    def __init__(self, client: LiteFSClient, path: str = "/events"):
        self._client = client
        self._url = client.url + path
        self._lock = asyncio.Lock()
        self._closed = asyncio.Event()
        self._response: httpx.Response | None = None
        self._decoder: EventDecoder | None = None

    @property
    def url(self) -> str:
        return self._url

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def connected(self) -> bool:
        """Whether a response body is currently open."""
        return self._decoder is not None

    async def next(self) -> Event:
        """Read the next event from the node.

        Opens a new request if there is no open connection. Calling again
        after an error initiates a new request.

        Raises:
            SubscriptionClosedError: The subscription was closed before or
                while this call was blocking.
            SubscriptionError: The request or the read failed.
        """
        if self._closed.is_set():
            raise SubscriptionClosedError()

        step = asyncio.ensure_future(self._next())
        closed = asyncio.ensure_future(self._closed.wait())
        try:
            await asyncio.wait({step, closed}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            closed.cancel()
            if not step.done():
                step.cancel()
                await asyncio.gather(step, return_exceptions=True)

        if step.cancelled():
            raise SubscriptionClosedError()
        if self._closed.is_set() and step.exception() is not None:
            # Failures caused by close() tearing down the body
            raise SubscriptionClosedError()
        return step.result()

    async def close(self) -> None:
        """Abort any in-flight request and release the open response.

        Safe to call more than once.
        """
        if not self._closed.is_set():
            logger.debug(f"Closing event subscription to {self._url}")
        self._closed.set()

        async with self._lock:
            await self._disconnect()

    async def _next(self) -> Event:
        async with self._lock:
            if self._decoder is None:
                await self._connect()
            assert self._decoder is not None

            try:
                return await self._decoder.next_event()
            except asyncio.CancelledError:
                await self._disconnect()
                raise
            except SubscriptionError:
                await self._disconnect()
                raise
            except httpx.RemoteProtocolError as e:
                await self._disconnect()
                raise TruncatedStreamError(str(e)) from e
            except httpx.HTTPError as e:
                await self._disconnect()
                raise TransportError(str(e)) from e

    async def _connect(self) -> None:
        request = self._client.http.build_request("GET", self._url)
        try:
            response = await self._client.http.send(request, stream=True)
        except httpx.HTTPError as e:
            raise TransportError(f"GET {self._url}: {e}") from e

        if not response.is_success:
            await response.aclose()
            raise UnexpectedStatusError(response.status_code)

        record_connect()
        logger.debug(f"Subscribed to {self._url}")
        self._response = response
        self._decoder = EventDecoder(response.aiter_bytes())

    async def _disconnect(self) -> None:
        response = self._response
        self._response = None
        self._decoder = None
        if response is not None:
            await response.aclose()
            logger.debug(f"Disconnected from {self._url}")

    async def __aenter__(self) -> EventSubscription:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()
