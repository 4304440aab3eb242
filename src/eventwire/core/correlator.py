"""Request/response correlation on top of a one-way transport.

A request travels as ``(request_id, *args)`` under the caller's event
name. Responders answer with ``(request_id, *reply_args)`` under the
reply event, addressed to the peer that asked. The requesting side keeps
a PendingRequest per outstanding id and resolves it exactly once: by the
matching reply, by the timeout, or by ``cancel``.
"""

from __future__ import annotations

from collections.abc import Callable
import logging
from threading import Lock
from typing import Any
from uuid import uuid4

from eventwire.contracts.types import BROADCAST, CANCELLED, TIMED_OUT, Peer, TimeoutIndicator
from eventwire.core.errors import (
    ValidationError,
    require_event_name,
    require_peer,
    require_timeout,
)
from eventwire.core.registry import EventRegistry
from eventwire.core.signals import Signal, WaitResult
from eventwire.observability.metrics import REPLIES_DISCARDED, REQUEST_DURATION, REQUESTS
from eventwire.observability.telemetry import get_tracer
from eventwire.transport.base import Transport

logger = logging.getLogger(__name__)

DEFAULT_REPLY_EVENT = "eventwire.reply"
DEFAULT_REQUEST_TIMEOUT = 10.0


def new_request_id() -> str:
    return uuid4().hex


class PendingRequest:
    """In-flight state of one request awaiting its reply."""

    __slots__ = ("request_id", "event", "gate", "resolved", "result", "_waiter", "_lock")

    def __init__(self, request_id: str, event: str) -> None:
        self.request_id = request_id
        self.event = event
        self.gate = Signal(f"{event}#{request_id}")
        # Armed before the request is sent so a reply delivered during the
        # send itself is not missed.
        self._waiter = self.gate.waiter()
        self._lock = Lock()
        self.resolved = False
        self.result: WaitResult = TIMED_OUT

    def resolve(self, result: WaitResult) -> bool:
        """Settle the request with ``result``. Only the first caller wins."""
        with self._lock:
            if self.resolved:
                return False
            self.resolved = True
            self.result = result
        if isinstance(result, TimeoutIndicator):
            self.gate.destroy()
        else:
            self.gate.fire(*result)
            self.gate.destroy()
        return True

    def wait(self, timeout: float) -> WaitResult:
        self._waiter.result(timeout)
        # No-op when a reply or cancellation already won the race.
        self.resolve(TIMED_OUT)
        return self.result


class RequestCorrelator:
    """Turns fire-and-forget sends into awaitable calls."""

    def __init__(
        self,
        transport: Transport,
        registry: EventRegistry,
        *,
        reply_event: str = DEFAULT_REPLY_EVENT,
        default_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        id_factory: Callable[[], str] = new_request_id,
    ) -> None:
        self._transport = transport
        self._registry = registry
        self.reply_event = require_event_name(reply_event)
        self.default_timeout = require_timeout(default_timeout)
        self._id_factory = id_factory
        self._pending: dict[str, PendingRequest] = {}
        self._lock = Lock()
        self._reply_connection = registry.get(self.reply_event).connect(self._on_reply)

    def request(
        self,
        event_name: str,
        timeout: float | None = None,
        *args: Any,
        target: Peer = BROADCAST,
    ) -> WaitResult:
        """Send ``args`` under ``event_name`` and block for the correlated reply.

        Returns the reply arguments as a tuple, ``TIMED_OUT`` if no reply
        arrived within ``timeout`` seconds, or ``CANCELLED`` if the request
        was cancelled meanwhile.
        """
        require_event_name(event_name)
        seconds = self.default_timeout if timeout is None else require_timeout(timeout)
        pending = self._register(event_name)
        tracer = get_tracer("eventwire.correlator")
        with tracer.start_as_current_span("eventwire.request") as span:
            span.set_attribute("event", event_name)
            span.set_attribute("request_id", pending.request_id)
            with REQUEST_DURATION.labels(event=event_name).time():
                try:
                    self._transport.send_reliable(event_name, target, pending.request_id, *args)
                except Exception:
                    self._discard(pending)
                    pending.resolve(CANCELLED)
                    logger.exception(
                        "request.send_failed",
                        extra={"extra": {"event": event_name, "request_id": pending.request_id}},
                    )
                    raise
                result = pending.wait(seconds)
            self._discard(pending)

            outcome = result.value if isinstance(result, TimeoutIndicator) else "replied"
            span.set_attribute("outcome", outcome)
            REQUESTS.labels(event=event_name, outcome=outcome).inc()
            log = logger.info if outcome == "replied" else logger.warning
            log(
                f"request.{outcome}",
                extra={
                    "extra": {
                        "event": event_name,
                        "request_id": pending.request_id,
                        "timeout": seconds,
                    }
                },
            )
        return result

    def respond(self, peer: Peer, request_id: str, *args: Any) -> None:
        """Send ``(request_id, *args)`` back to ``peer`` on the reply event."""
        require_peer(peer)
        if not isinstance(request_id, str) or not request_id:
            raise ValidationError(f"request id must be a non-empty string, got {request_id!r}")
        self._transport.send_reliable(self.reply_event, peer, request_id, *args)

    def cancel(self, request_id: str) -> bool:
        """Resolve an outstanding request with ``CANCELLED``. False if it already settled."""
        with self._lock:
            pending = self._pending.pop(request_id, None)
        if pending is None:
            return False
        return pending.resolve(CANCELLED)

    def pending_ids(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._pending)

    def __contains__(self, request_id: object) -> bool:
        with self._lock:
            return request_id in self._pending

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def close(self) -> None:
        """Stop listening for replies and cancel everything outstanding."""
        self._reply_connection.disconnect()
        for request_id in self.pending_ids():
            self.cancel(request_id)

    def _register(self, event_name: str) -> PendingRequest:
        with self._lock:
            request_id = self._id_factory()
            while request_id in self._pending:
                request_id = self._id_factory()
            pending = PendingRequest(request_id, event_name)
            self._pending[request_id] = pending
            return pending

    def _discard(self, pending: PendingRequest) -> None:
        with self._lock:
            if self._pending.get(pending.request_id) is pending:
                del self._pending[pending.request_id]

    def _on_reply(self, source: Peer, request_id: Any = None, *args: Any) -> None:
        pending = None
        if isinstance(request_id, str):
            with self._lock:
                pending = self._pending.pop(request_id, None)
        if pending is None:
            reason = "unknown" if isinstance(request_id, str) else "malformed"
            REPLIES_DISCARDED.labels(reason=reason).inc()
            logger.debug(
                "reply.discarded",
                extra={"extra": {"request_id": request_id, "source": source, "reason": reason}},
            )
            return
        if not pending.resolve(args):
            REPLIES_DISCARDED.labels(reason="settled").inc()
            logger.debug(
                "reply.discarded",
                extra={"extra": {"request_id": request_id, "source": source, "reason": "settled"}},
            )
