"""Transport interface consumed by the registry pump and the correlator."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any, Protocol

from eventwire.contracts.messages import InboundMessage
from eventwire.contracts.types import Peer


class Transport(Protocol):
    """One-way message delivery between process endpoints."""

    peer_id: str

    def send_reliable(self, event_name: str, target: Peer, *args: Any) -> None:
        """Deliver to ``target`` (a peer or BROADCAST) with ordering and retries."""

    def send_unreliable(self, event_name: str, target: Peer, *args: Any) -> None:
        """Deliver to ``target`` on a best-effort basis."""

    def on_message(self, event_name: str) -> Iterator[InboundMessage]:
        """Yield messages for ``event_name`` as they arrive."""

    def next_message(self, event_name: str, timeout: float | None = None) -> InboundMessage | None:
        """Return the next message or None if timed out."""

    def close(self) -> None:
        """Release the endpoint."""
