"""Pumps inbound transport messages into registry signals."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from threading import Event as ThreadEvent, Lock, Thread

from eventwire.contracts.messages import InboundMessage
from eventwire.core.errors import require_event_name, require_timeout
from eventwire.core.registry import EventRegistry
from eventwire.observability.telemetry import get_tracer
from eventwire.transport.base import Transport

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class MessageDispatcher:
    """Runs one daemon thread per routed event name.

    Each thread drains the transport's queue for its event and fires the
    registry signal of the same name with ``(source, *args)``.
    """

    transport: Transport
    registry: EventRegistry
    poll_interval: float = 0.2
    _threads: dict[str, Thread] = field(default_factory=dict, init=False)
    _stop_event: ThreadEvent = field(default_factory=ThreadEvent, init=False)
    _lock: Lock = field(default_factory=Lock, init=False)

    def __post_init__(self) -> None:
        require_timeout(self.poll_interval)

    def route(self, event_name: str) -> None:
        """Start delivering ``event_name`` messages. Idempotent."""
        require_event_name(event_name)
        with self._lock:
            if event_name in self._threads or self._stop_event.is_set():
                return
            # Subscribe before returning so nothing sent afterwards is missed.
            first = self.transport.next_message(event_name, timeout=0)
            thread = Thread(
                target=self._pump,
                args=(event_name, first),
                name=f"eventwire-dispatch-{event_name}",
                daemon=True,
            )
            self._threads[event_name] = thread
        thread.start()
        logger.debug("dispatcher.routed", extra={"extra": {"event": event_name}})

    def routed(self) -> list[str]:
        with self._lock:
            return list(self._threads)

    def _pump(self, event_name: str, first: InboundMessage | None) -> None:
        if first is not None:
            self.dispatch(first)
        self.run(event_name, self._stop_event)

    def run(self, event_name: str, stop_event: ThreadEvent) -> None:
        while not stop_event.is_set():
            message = self.transport.next_message(event_name, timeout=self.poll_interval)
            if message is None:
                continue
            self.dispatch(message)

    def dispatch(self, message: InboundMessage) -> None:
        tracer = get_tracer("eventwire.dispatcher")
        with tracer.start_as_current_span("eventwire.dispatch") as span:
            span.set_attribute("event", message.event)
            span.set_attribute("delivery", message.delivery.value)
            self.registry.fire(message.event, message.source, *message.args)

    def stop(self, timeout: float | None = None) -> None:
        self._stop_event.set()
        with self._lock:
            threads = list(self._threads.values())
        for thread in threads:
            thread.join(timeout=timeout)
