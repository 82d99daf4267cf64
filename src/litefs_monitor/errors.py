"""Exceptions raised by the LiteFS client.

Subscription failures are recoverable: the next call to
``EventSubscription.next()`` opens a fresh connection. ``ClosedError`` is
terminal and is only raised after an explicit close.
"""

from __future__ import annotations


class LiteFSError(Exception):
    """Base class for all LiteFS client errors."""


class SubscriptionError(LiteFSError):
    """A failed attempt to read from the event stream."""


class TransportError(SubscriptionError):
    """Connection refused, reset, DNS failure or other network error."""


class UnexpectedStatusError(SubscriptionError):
    """The node answered the subscription request with a non-2xx status."""

    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__(f"unexpected status: {status_code}")


class DecodeError(SubscriptionError):
    """A line of the event stream is not a valid event."""


class TruncatedStreamError(SubscriptionError):
    """The connection closed in the middle of an event."""


class StreamEndedError(SubscriptionError):
    """The node closed the event stream between two events."""


class ClosedError(LiteFSError):
    """The subscription or monitor was closed explicitly."""


class SubscriptionClosedError(ClosedError):
    def __init__(self, message: str = "closed EventSubscription"):
        super().__init__(message)


class MonitorClosedError(ClosedError):
    def __init__(self, message: str = "PrimaryMonitor closed"):
        super().__init__(message)


class NotReadyError(LiteFSError):
    """The monitor has not received its first event yet."""

    def __init__(self, message: str = "awaiting first event"):
        super().__init__(message)


class NotReplicatedError(LiteFSError):
    """The initial replication from the primary has not finished yet."""

    def __init__(self, message: str = "initial replication from primary not finished yet"):
        super().__init__(message)
