"""Primary monitoring for a LiteFS cluster.

A PrimaryMonitor consumes one EventSubscription in a background task and
caches the leadership state it reports. The cached state is readable from
any thread or task:

- Before the first event or error arrives, accessors raise NotReadyError.
- After that, they return the last known value. A failed read does not erase
  it; the failure is kept alongside as ``last_error`` until the next
  leadership event clears it.

Example:
    monitor = await client.monitor_primary()
    await monitor.wait_ready(timeout=5)

    status = monitor.status()
    if status.error is not None:
        logger.warning(f"Leadership may be stale: {status.error}")
    if status.is_primary:
        await write_locally()

    await monitor.close()
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from types import TracebackType

from litefs_monitor.errors import (
    ClosedError,
    MonitorClosedError,
    NotReadyError,
    SubscriptionError,
)
from litefs_monitor.events import Event, InitEventData, PrimaryChangeEventData
from litefs_monitor.observability.logging import LogContext
from litefs_monitor.observability.metrics import (
    record_event,
    record_subscription_error,
    set_is_primary,
)
from litefs_monitor.subscription import EventSubscription

logger = logging.getLogger(__name__)

DEFAULT_RETRY_BACKOFF = 0.1  # Seconds between consecutive failures


@dataclass(frozen=True, slots=True)
class PrimaryStatus:
    """Snapshot of the monitor's cached leadership state."""

    is_primary: bool
    hostname: str
    error: BaseException | None = None


class PrimaryMonitor:
    """Monitors the current primary of a LiteFS cluster.

    The background task is the only writer of the cached state. A single
    ``threading.Lock`` guards it; the lock is never held across an await.

    Args:
        subscription: Event subscription to consume (owned by the monitor;
            closing it directly also closes the monitor)
        retry_backoff: Delay before retrying after a second consecutive
            failure; the first failure after a success is retried immediately
        node: Node URL added to log lines from the background task
    """

    def __init__(
        self,
        subscription: EventSubscription,
        retry_backoff: float = DEFAULT_RETRY_BACKOFF,
        node: str | None = None,
    ):
        self._subscription = subscription
        self.retry_backoff = retry_backoff
        self._node = node or subscription.url

        self._lock = threading.Lock()
        self._is_primary = False
        self._hostname = ""
        self._error: BaseException | None = None
        self._ready = False
        self._closed = False

        self._ready_event = asyncio.Event()
        self._closed_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None

    @property
    def ready(self) -> bool:
        """Whether the first event or error has been received."""
        with self._lock:
            return self._ready

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    @property
    def last_error(self) -> BaseException | None:
        """The error from the most recent read, cleared by the next leadership event."""
        with self._lock:
            return self._error

    async def start(self) -> None:
        """Start consuming the event stream.

        Starting more than once, or after close, has no effect.
        """
        if self._task is not None or self.closed:
            return

        self._task = asyncio.create_task(self._run(), name=f"litefs-primary-monitor:{self._node}")
        logger.debug(f"Started primary monitor for {self._node}")

    async def wait_ready(self, timeout: float | None = None) -> None:
        """Block until a response or error has been received from the node.

        ``is_primary()`` and ``hostname()`` raise NotReadyError until this
        returns (or raises a recorded error).

        Args:
            timeout: Maximum time to wait in seconds (None = wait forever)

        Raises:
            TimeoutError: The timeout expired first; the monitor is unaffected.
            MonitorClosedError: The monitor was closed before it became ready.
            SubscriptionError: The most recent read from the node failed.
        """
        if not self._ready_event.is_set():
            ready = asyncio.ensure_future(self._ready_event.wait())
            closed = asyncio.ensure_future(self._closed_event.wait())
            try:
                done, _ = await asyncio.wait(
                    {ready, closed},
                    timeout=timeout,
                    return_when=asyncio.FIRST_COMPLETED,
                )
            finally:
                ready.cancel()
                closed.cancel()
            if not done:
                raise TimeoutError(f"primary monitor not ready after {timeout}s")

        with self._lock:
            if not self._ready:
                raise MonitorClosedError()
            error = self._error
        if error is not None:
            raise error

    def status(self) -> PrimaryStatus:
        """Return the cached leadership state and the most recent error.

        Raises:
            NotReadyError: Nothing has been received from the node yet.
            MonitorClosedError: The monitor was closed before it became ready.
        """
        with self._lock:
            if not self._ready:
                if self._closed:
                    raise MonitorClosedError()
                raise NotReadyError()
            return PrimaryStatus(self._is_primary, self._hostname, self._error)

    def is_primary(self) -> bool:
        """Report whether the local node is the primary node in the cluster.

        Returns the most recent value even if the last read failed; check
        ``last_error`` or use ``status()`` to see that failure.
        """
        return self.status().is_primary

    def hostname(self) -> str:
        """Report the hostname of the current primary node in the cluster.

        Same staleness rules as ``is_primary()``.
        """
        return self.status().hostname

    async def close(self) -> None:
        """Unsubscribe from the node's event stream and stop the background task."""
        first = self._mark_closed()

        await self._subscription.close()

        if self._task is not None:
            await self._task
        if first:
            logger.debug(f"Stopped primary monitor for {self._node}")

    async def _run(self) -> None:
        """Consume events until the subscription is closed."""
        with LogContext(node=self._node):
            failures = 0
            try:
                while True:
                    try:
                        event = await self._subscription.next()
                    except ClosedError:
                        break
                    except SubscriptionError as e:
                        failures += 1
                        self._record_error(e)
                    except Exception as e:
                        failures += 1
                        logger.exception("Unexpected error reading LiteFS events")
                        self._record_error(e)
                    else:
                        failures = 0
                        self._apply_event(event)

                    self._mark_ready()

                    if failures > 1 and self.retry_backoff > 0:
                        await self._sleep(self.retry_backoff)
            finally:
                # The subscription may have been closed without going through close()
                if self._mark_closed():
                    logger.debug(f"Event subscription closed, stopping monitor for {self._node}")

    def _apply_event(self, event: Event) -> None:
        record_event(event.type if event.is_known else "unknown")

        data = event.data
        if not isinstance(data, (InitEventData, PrimaryChangeEventData)):
            return

        with self._lock:
            if self._closed:
                return
            changed = (data.is_primary, data.hostname) != (self._is_primary, self._hostname)
            self._is_primary = data.is_primary
            self._hostname = data.hostname
            self._error = None

        set_is_primary(self._node, data.is_primary)
        if changed:
            logger.info(
                f"Primary is {data.hostname or '<unknown>'}",
                extra={"is_primary": data.is_primary, "primary_hostname": data.hostname},
            )

    def _record_error(self, error: BaseException) -> None:
        record_subscription_error(error)
        with self._lock:
            if self._closed:
                return
            self._error = error
        logger.warning(f"LiteFS event stream error: {error}")

    def _mark_closed(self) -> bool:
        """Record the closed state; returns False if it was already recorded."""
        with self._lock:
            if self._closed:
                return False
            self._closed = True
            self._error = MonitorClosedError()
        self._closed_event.set()
        return True

    def _mark_ready(self) -> None:
        if self._ready_event.is_set():
            return
        with self._lock:
            self._ready = True
        self._ready_event.set()

    async def _sleep(self, delay: float) -> None:
        # Returns early when the monitor is closed
        try:
            await asyncio.wait_for(self._closed_event.wait(), timeout=delay)
        except TimeoutError:
            pass

    async def __aenter__(self) -> PrimaryMonitor:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()
