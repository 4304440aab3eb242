"""In-process transport: a hub of named endpoints with per-event queues.

This is suitable for local development and tests. Every message is
encoded and decoded with the network's codec, so payloads behave exactly
as they would over a real wire.
"""

from __future__ import annotations

from collections.abc import Iterator
import logging
from queue import Empty, Queue
from random import Random
from threading import Lock
from typing import Any

from eventwire.contracts.messages import Envelope, InboundMessage
from eventwire.contracts.types import BROADCAST, Delivery, Peer
from eventwire.core.errors import TransportError, ValidationError, require_event_name, require_peer
from eventwire.transport.codec import JsonCodec, to_inbound

logger = logging.getLogger(__name__)


class InMemoryNetwork:
    """Connects InMemoryTransport endpoints living in the same process."""

    def __init__(
        self,
        codec: JsonCodec | None = None,
        *,
        drop_rate: float = 0.0,
        seed: int | None = None,
    ) -> None:
        if not 0.0 <= drop_rate <= 1.0:
            raise ValidationError(f"drop_rate must be within [0, 1], got {drop_rate!r}")
        self.codec = codec or JsonCodec()
        self.drop_rate = drop_rate
        self._random = Random(seed)
        self._endpoints: dict[str, InMemoryTransport] = {}
        self._lock = Lock()

    def endpoint(self, peer_id: str) -> InMemoryTransport:
        """Attach a new endpoint named ``peer_id``."""
        if not isinstance(peer_id, str) or not peer_id:
            raise ValidationError(f"peer id must be a non-empty string, got {peer_id!r}")
        with self._lock:
            if peer_id in self._endpoints:
                raise TransportError(f"peer {peer_id!r} is already connected")
            transport = InMemoryTransport(self, peer_id)
            self._endpoints[peer_id] = transport
        logger.debug("network.peer_connected", extra={"extra": {"peer": peer_id}})
        return transport

    def peers(self) -> list[str]:
        with self._lock:
            return list(self._endpoints)

    def deliver(self, envelope: Envelope, target: Peer) -> None:
        text = self.codec.encode_envelope(envelope)
        with self._lock:
            if target is BROADCAST:
                recipients = [
                    endpoint
                    for peer_id, endpoint in self._endpoints.items()
                    if peer_id != envelope.source
                ]
            else:
                endpoint = self._endpoints.get(target)
                if endpoint is None:
                    raise TransportError(f"peer {target!r} is not connected")
                recipients = [endpoint]
            drop = envelope.delivery is Delivery.UNRELIABLE and self._should_drop()
        if drop:
            logger.debug(
                "network.message_dropped",
                extra={"extra": {"event": envelope.event, "source": envelope.source}},
            )
            return
        for endpoint in recipients:
            endpoint.receive(text)

    def detach(self, peer_id: str) -> None:
        with self._lock:
            self._endpoints.pop(peer_id, None)
        logger.debug("network.peer_disconnected", extra={"extra": {"peer": peer_id}})

    def _should_drop(self) -> bool:
        return self.drop_rate > 0 and self._random.random() < self.drop_rate


class InMemoryTransport:
    """Endpoint on an InMemoryNetwork."""

    def __init__(self, network: InMemoryNetwork, peer_id: str) -> None:
        self.peer_id = peer_id
        self._network = network
        self._queues: dict[str, Queue[InboundMessage]] = {}
        self._lock = Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _queue_for(self, event_name: str) -> Queue[InboundMessage]:
        require_event_name(event_name)
        with self._lock:
            if event_name not in self._queues:
                self._queues[event_name] = Queue()
            return self._queues[event_name]

    def send_reliable(self, event_name: str, target: Peer, *args: Any) -> None:
        self._send(event_name, target, args, Delivery.RELIABLE)

    def send_unreliable(self, event_name: str, target: Peer, *args: Any) -> None:
        self._send(event_name, target, args, Delivery.UNRELIABLE)

    def _send(self, event_name: str, target: Peer, args: tuple[Any, ...], delivery: Delivery) -> None:
        if self._closed:
            raise TransportError(f"endpoint {self.peer_id!r} is closed")
        require_event_name(event_name)
        require_peer(target)
        envelope = Envelope(event=event_name, source=self.peer_id, delivery=delivery, args=list(args))
        self._network.deliver(envelope, target)

    def receive(self, text: str) -> None:
        envelope = self._network.codec.decode_envelope(text)
        with self._lock:
            queue = self._queues.get(envelope.event)
        if queue is None:
            logger.debug(
                "transport.unrouted_message",
                extra={"extra": {"peer": self.peer_id, "event": envelope.event}},
            )
            return
        queue.put(to_inbound(envelope))

    def on_message(self, event_name: str) -> Iterator[InboundMessage]:
        queue = self._queue_for(event_name)
        while True:
            yield queue.get()

    def next_message(self, event_name: str, timeout: float | None = None) -> InboundMessage | None:
        queue = self._queue_for(event_name)
        try:
            return queue.get(timeout=timeout)
        except Empty:
            return None

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._network.detach(self.peer_id)
