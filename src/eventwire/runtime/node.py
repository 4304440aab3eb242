"""EventNode: one process endpoint with named signals and request/response."""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Any, Callable

from eventwire.contracts.types import BROADCAST, Peer
from eventwire.core.correlator import DEFAULT_REPLY_EVENT, DEFAULT_REQUEST_TIMEOUT, RequestCorrelator
from eventwire.core.registry import EventRegistry
from eventwire.core.signals import Connection, Listener, WaitResult
from eventwire.runtime.dispatcher import MessageDispatcher
from eventwire.settings import Settings, get_settings
from eventwire.transport.base import Transport
from eventwire.transport.memory import InMemoryNetwork
from eventwire.transport.nats import NATSTransport

logger = logging.getLogger(__name__)

RequestHandler = Callable[..., Any]


class EventNode:
    """Bundles a transport with its registry, dispatcher and correlator.

    Listeners registered through ``on``/``once`` receive ``(source, *args)``
    for every message of that event delivered to this node.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        registry: EventRegistry | None = None,
        reply_event: str = DEFAULT_REPLY_EVENT,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        poll_interval: float = 0.2,
    ) -> None:
        self.transport = transport
        self.registry = registry if registry is not None else EventRegistry()
        self.dispatcher = MessageDispatcher(transport, self.registry, poll_interval)
        self.correlator = RequestCorrelator(
            transport,
            self.registry,
            reply_event=reply_event,
            default_timeout=request_timeout,
        )
        self.dispatcher.route(self.correlator.reply_event)
        self._closed = False

    @property
    def peer_id(self) -> str:
        return self.transport.peer_id

    def on(self, event_name: str, listener: Listener) -> Connection:
        self.dispatcher.route(event_name)
        return self.registry.get(event_name).connect(listener)

    def once(self, event_name: str, listener: Listener) -> Connection:
        self.dispatcher.route(event_name)
        return self.registry.get(event_name).once(listener)

    def wait(self, event_name: str, timeout: float | None = None) -> WaitResult:
        """Block until the next ``event_name`` message and return ``(source, *args)``."""
        self.dispatcher.route(event_name)
        return self.registry.get(event_name).wait(timeout)

    def send(self, event_name: str, target: Peer, *args: Any, reliable: bool = True) -> None:
        if reliable:
            self.transport.send_reliable(event_name, target, *args)
        else:
            self.transport.send_unreliable(event_name, target, *args)

    def broadcast(self, event_name: str, *args: Any, reliable: bool = True) -> None:
        self.send(event_name, BROADCAST, *args, reliable=reliable)

    def request(
        self,
        event_name: str,
        timeout: float | None = None,
        *args: Any,
        target: Peer = BROADCAST,
    ) -> WaitResult:
        return self.correlator.request(event_name, timeout, *args, target=target)

    def respond(self, peer: Peer, request_id: str, *args: Any) -> None:
        self.correlator.respond(peer, request_id, *args)

    def handle(self, event_name: str, handler: RequestHandler) -> Connection:
        """Answer every ``event_name`` request with ``handler(source, *args)``.

        A tuple result is sent as the reply arguments, ``None`` as an empty
        reply and anything else as a single argument. If the handler raises,
        no reply is sent and the requester times out.
        """

        def on_request(source: Peer, request_id: Any = None, *args: Any) -> None:
            if not isinstance(request_id, str) or not request_id:
                logger.warning(
                    "handler.malformed_request",
                    extra={"extra": {"event": event_name, "source": source}},
                )
                return
            result = handler(source, *args)
            if result is None:
                reply: tuple[Any, ...] = ()
            elif isinstance(result, tuple):
                reply = result
            else:
                reply = (result,)
            self.respond(source, request_id, *reply)

        return self.on(event_name, on_request)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.correlator.close()
        self.dispatcher.stop(timeout=self.dispatcher.poll_interval * 5)
        self.transport.close()

    def __enter__(self) -> EventNode:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def create_node(
    settings: Settings | None = None,
    *,
    network: InMemoryNetwork | None = None,
    peer_id: str | None = None,
) -> EventNode:
    """Build an EventNode on the configured transport."""
    settings = settings or get_settings()
    node_id = peer_id or settings.peer_id
    if settings.transport == "nats":
        transport: Transport = NATSTransport(settings.nats_url, node_id, settings.subject_prefix)
    else:
        transport = (network or InMemoryNetwork()).endpoint(node_id)
    logger.info(
        "node.created",
        extra={"extra": {"peer": node_id, "transport": settings.transport}},
    )
    return EventNode(
        transport,
        reply_event=settings.reply_event,
        request_timeout=settings.request_timeout,
        poll_interval=settings.poll_interval,
    )
