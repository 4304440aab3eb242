"""NATS-backed transport implementation."""

from __future__ import annotations

import asyncio
from collections.abc import Iterator
from concurrent.futures import Future, TimeoutError as FutureTimeoutError
import logging
from queue import Empty, Queue
from threading import Lock, Thread
from typing import Any

from nats.aio.client import Client as NATS

from eventwire.contracts.messages import Envelope, InboundMessage
from eventwire.contracts.types import BROADCAST, Delivery, Peer
from eventwire.core.errors import CodecError, TransportError, require_event_name, require_peer
from eventwire.transport.codec import JsonCodec, to_inbound

logger = logging.getLogger(__name__)


class NATSTransport:
    """NATS endpoint with a background asyncio loop.

    Broadcasts go to ``<prefix>.all.<event>``; directed sends go to
    ``<prefix>.peer.<peer_id>.<event>``. Each endpoint listens on both for
    every event it routes.
    """

    def __init__(
        self,
        url: str,
        peer_id: str,
        subject_prefix: str = "eventwire",
        *,
        codec: JsonCodec | None = None,
        flush_timeout: float = 5.0,
    ) -> None:
        self.peer_id = peer_id
        self._url = url
        self._prefix = subject_prefix
        self._codec = codec or JsonCodec()
        self._flush_timeout = flush_timeout
        self._queues: dict[str, Queue[InboundMessage]] = {}
        self._lock = Lock()
        self._loop = asyncio.new_event_loop()
        self._client = NATS()
        self._thread = Thread(target=self._run_loop, name=f"eventwire-nats-{peer_id}", daemon=True)
        self._thread.start()
        self._closed = False
        try:
            self._call(self._connect())
        except TransportError:
            self._stop_loop()
            raise

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    async def _connect(self) -> None:
        await self._client.connect(servers=[self._url])

    def _call(self, coro: Any) -> Any:
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        try:
            return future.result(timeout=self._flush_timeout)
        except FutureTimeoutError as exc:
            future.cancel()
            raise TransportError(f"NATS operation timed out after {self._flush_timeout}s") from exc
        except Exception as exc:
            raise TransportError(f"NATS operation failed: {exc}") from exc

    def _subject(self, event_name: str, target: Peer) -> str:
        if target is BROADCAST:
            return f"{self._prefix}.all.{event_name}"
        return f"{self._prefix}.peer.{target}.{event_name}"

    def _queue_for(self, event_name: str) -> Queue[InboundMessage]:
        require_event_name(event_name)
        with self._lock:
            queue = self._queues.get(event_name)
            if queue is None:
                # Held across the round trip so no caller sees the queue
                # before the server has confirmed both subscriptions.
                queue = Queue()
                self._call(self._subscribe(event_name, queue))
                self._queues[event_name] = queue
            return queue

    async def _subscribe(self, event_name: str, queue: Queue[InboundMessage]) -> None:
        broadcast_subject = self._subject(event_name, BROADCAST)

        async def handler(msg: Any) -> None:
            try:
                envelope = self._codec.decode_envelope(msg.data)
            except CodecError:
                logger.warning(
                    "transport.undecodable_message",
                    extra={"extra": {"subject": msg.subject}},
                )
                return
            # Broadcasts exclude the sender; directed sends to self still arrive.
            if msg.subject == broadcast_subject and envelope.source == self.peer_id:
                return
            queue.put(to_inbound(envelope))

        for subject in (broadcast_subject, self._subject(event_name, self.peer_id)):
            await self._client.subscribe(subject, cb=handler)
        await self._client.flush(timeout=self._flush_timeout)

    def send_reliable(self, event_name: str, target: Peer, *args: Any) -> None:
        payload, subject = self._encode(event_name, target, args, Delivery.RELIABLE)

        async def publish_and_flush() -> None:
            await self._client.publish(subject, payload)
            await self._client.flush(timeout=self._flush_timeout)

        self._call(publish_and_flush())

    def send_unreliable(self, event_name: str, target: Peer, *args: Any) -> None:
        payload, subject = self._encode(event_name, target, args, Delivery.UNRELIABLE)
        future = asyncio.run_coroutine_threadsafe(self._client.publish(subject, payload), self._loop)

        def log_failure(done: Future[None]) -> None:
            if done.cancelled() or done.exception() is None:
                return
            logger.warning(
                "transport.unreliable_send_failed",
                extra={"extra": {"event": event_name, "subject": subject, "error": str(done.exception())}},
            )

        future.add_done_callback(log_failure)

    def _encode(
        self, event_name: str, target: Peer, args: tuple[Any, ...], delivery: Delivery
    ) -> tuple[bytes, str]:
        require_event_name(event_name)
        require_peer(target)
        if not self._client.is_connected:
            raise TransportError(f"NATS endpoint {self.peer_id!r} is not connected")
        envelope = Envelope(event=event_name, source=self.peer_id, delivery=delivery, args=list(args))
        return self._codec.encode_envelope(envelope).encode("utf-8"), self._subject(event_name, target)

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
        try:
            if self._client.is_connected:
                self._call(self._client.drain())
        finally:
            self._stop_loop()

    def _stop_loop(self) -> None:
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout=self._flush_timeout)
        if not self._thread.is_alive():
            self._loop.close()
