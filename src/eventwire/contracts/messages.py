"""Wire and in-process message contracts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from eventwire.contracts.types import Delivery, Peer


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Envelope(BaseModel):
    """Standard envelope for every message crossing a transport."""

    message_id: UUID = Field(default_factory=uuid4)
    event: str = Field(min_length=1)
    source: str | None = None
    delivery: Delivery = Delivery.RELIABLE
    args: list[Any] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)

    def to_wire(self) -> dict[str, Any]:
        # args stay untouched so the codec decides what is encodable
        return {
            "message_id": str(self.message_id),
            "event": self.event,
            "source": self.source,
            "delivery": self.delivery.value,
            "args": self.args,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(slots=True)
class InboundMessage:
    """A message delivered by a transport to a local endpoint."""

    event: str
    source: Peer
    args: tuple[Any, ...]
    delivery: Delivery = Delivery.RELIABLE
