"""Client for monitoring a LiteFS node.

Subscribes to a node's event stream and caches the cluster's leadership
state:
- EventSubscription: pull-based, reconnecting event stream
- PrimaryMonitor: thread-safe leadership cache with a readiness gate
- HALT lock and replication lag helpers
"""

from litefs_monitor.client import (
    DEFAULT_URL,
    LiteFSClient,
    close_default_client,
    get_default_client,
    monitor_primary,
)
from litefs_monitor.errors import (
    ClosedError,
    DecodeError,
    LiteFSError,
    MonitorClosedError,
    NotReadyError,
    NotReplicatedError,
    StreamEndedError,
    SubscriptionClosedError,
    SubscriptionError,
    TransportError,
    TruncatedStreamError,
    UnexpectedStatusError,
)
from litefs_monitor.events import (
    Event,
    EventDecoder,
    EventType,
    InitEventData,
    PrimaryChangeEventData,
    TxEventData,
    decode_event,
)
from litefs_monitor.halt import HALT_BYTE, ahalted, halt, halted, try_halt, unhalt, with_halt
from litefs_monitor.lag import lag
from litefs_monitor.monitor import PrimaryMonitor, PrimaryStatus
from litefs_monitor.subscription import EventSubscription

__all__ = [
    "DEFAULT_URL",
    "HALT_BYTE",
    "ClosedError",
    "DecodeError",
    "Event",
    "EventDecoder",
    "EventSubscription",
    "EventType",
    "InitEventData",
    "LiteFSClient",
    "LiteFSError",
    "MonitorClosedError",
    "NotReadyError",
    "NotReplicatedError",
    "PrimaryChangeEventData",
    "PrimaryMonitor",
    "PrimaryStatus",
    "StreamEndedError",
    "SubscriptionClosedError",
    "SubscriptionError",
    "TransportError",
    "TruncatedStreamError",
    "TxEventData",
    "UnexpectedStatusError",
    "ahalted",
    "close_default_client",
    "decode_event",
    "get_default_client",
    "halt",
    "halted",
    "lag",
    "monitor_primary",
    "try_halt",
    "unhalt",
    "with_halt",
]
