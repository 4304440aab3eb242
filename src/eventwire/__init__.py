"""eventwire: named signals and request/response over one-way transports."""

from .contracts.types import BROADCAST, CANCELLED, TIMED_OUT, Delivery, TimeoutIndicator  # noqa: F401
from .core.correlator import PendingRequest, RequestCorrelator  # noqa: F401
from .core.errors import (  # noqa: F401
    CodecError,
    DestroyedSignalError,
    EventWireError,
    TransportError,
    ValidationError,
)
from .core.registry import EventRegistry, get_default_registry  # noqa: F401
from .core.signals import Connection, Signal, Waiter  # noqa: F401
from .runtime.node import EventNode, create_node  # noqa: F401
from .transport.codec import JsonCodec  # noqa: F401
from .transport.memory import InMemoryNetwork, InMemoryTransport  # noqa: F401
