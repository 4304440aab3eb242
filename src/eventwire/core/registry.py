"""Process-wide mapping from event name to its Signal."""

from __future__ import annotations

from functools import lru_cache
import logging
from threading import Lock
from typing import Any

from eventwire.core.errors import require_event_name
from eventwire.core.signals import Signal

logger = logging.getLogger(__name__)


class EventRegistry:
    """One name, one signal, created on first lookup and never evicted.

    Senders fire through the registry and receivers subscribe through it,
    so both sides always observe the same Signal instance for a name.
    """

    def __init__(self) -> None:
        self._signals: dict[str, Signal] = {}
        self._lock = Lock()

    def get(self, event_name: str) -> Signal:
        """Return the signal for ``event_name``, creating it on first use."""
        require_event_name(event_name)
        with self._lock:
            signal = self._signals.get(event_name)
            if signal is None:
                signal = Signal(event_name)
                self._signals[event_name] = signal
                logger.debug("registry.signal_created", extra={"extra": {"event": event_name}})
            return signal

    def fire(self, event_name: str, *args: Any) -> None:
        self.get(event_name).fire(*args)

    def names(self) -> list[str]:
        with self._lock:
            return list(self._signals)

    def __contains__(self, event_name: object) -> bool:
        with self._lock:
            return event_name in self._signals

    def __len__(self) -> int:
        with self._lock:
            return len(self._signals)


@lru_cache
def get_default_registry() -> EventRegistry:
    """Registry shared by everything in the process that does not bring its own."""
    return EventRegistry()
