"""Transport recording helper."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from eventwire.contracts.messages import InboundMessage
from eventwire.contracts.types import Delivery, Peer
from eventwire.transport.base import Transport


@dataclass(slots=True)
class SentMessage:
    event: str
    target: Peer
    args: tuple[Any, ...]
    delivery: Delivery


@dataclass(slots=True)
class RecordingTransport:
    """Wraps another Transport and records every successful send."""

    transport: Transport
    sent: list[SentMessage] = field(default_factory=list)

    @property
    def peer_id(self) -> str:
        return self.transport.peer_id

    def send_reliable(self, event_name: str, target: Peer, *args: Any) -> None:
        self.transport.send_reliable(event_name, target, *args)
        self.sent.append(SentMessage(event_name, target, args, Delivery.RELIABLE))

    def send_unreliable(self, event_name: str, target: Peer, *args: Any) -> None:
        self.transport.send_unreliable(event_name, target, *args)
        self.sent.append(SentMessage(event_name, target, args, Delivery.UNRELIABLE))

    def on_message(self, event_name: str) -> Iterator[InboundMessage]:
        return self.transport.on_message(event_name)

    def next_message(self, event_name: str, timeout: float | None = None) -> InboundMessage | None:
        return self.transport.next_message(event_name, timeout=timeout)

    def close(self) -> None:
        self.transport.close()

    def sent_for(self, event_name: str) -> list[SentMessage]:
        return [message for message in self.sent if message.event == event_name]
