"""Shared enums and sentinels for eventwire contracts."""

from __future__ import annotations

from enum import Enum
from typing import Any


class TimeoutIndicator(Enum):
    """Non-error outcomes of a wait or request that never received a value."""

    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


class Delivery(str, Enum):
    """Delivery guarantees offered by a transport."""

    RELIABLE = "reliable"
    UNRELIABLE = "unreliable"


class Broadcast(Enum):
    """Target meaning every currently connected peer."""

    ALL = "all"


TIMED_OUT = TimeoutIndicator.TIMED_OUT
CANCELLED = TimeoutIndicator.CANCELLED
BROADCAST = Broadcast.ALL

# Peers are opaque handles owned by the transport.
Peer = Any
