"""Exception hierarchy and boundary validation for eventwire."""

from __future__ import annotations

import math
from numbers import Real
from typing import Any


class EventWireError(RuntimeError):
    """Base class for all eventwire errors."""


class DestroyedSignalError(EventWireError):
    """Raised when connecting to a signal that was already destroyed."""


class ValidationError(EventWireError, ValueError):
    """Raised for invalid arguments at a public boundary."""


class CodecError(EventWireError):
    """Raised when a value cannot be serialized or text cannot be decoded."""


class TransportError(EventWireError):
    """Raised when the transport fails to deliver a message."""


def require_event_name(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError(f"event name must be a non-empty string, got {name!r}")
    if name != name.strip():
        raise ValidationError(f"event name must not have surrounding whitespace: {name!r}")
    return name


def require_timeout(value: Any, *, allow_zero: bool = False) -> float:
    """Return ``value`` as a float if it is a usable timeout in seconds."""
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ValidationError(f"timeout must be a number of seconds, got {value!r}")
    seconds = float(value)
    if math.isnan(seconds) or math.isinf(seconds):
        raise ValidationError(f"timeout must be finite, got {value!r}")
    if seconds < 0 or (seconds == 0 and not allow_zero):
        raise ValidationError(f"timeout must be positive, got {value!r}")
    return seconds


def require_peer(target: Any) -> Any:
    if target is None:
        raise ValidationError("a target peer is required for a peer-directed send")
    return target
