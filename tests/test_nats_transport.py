"""NATSTransport tests against an in-process stand-in for the NATS client."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
import logging
import threading
import time
from types import SimpleNamespace
from typing import Any

import pytest

from eventwire.contracts.types import BROADCAST
from eventwire.core.errors import TransportError
import eventwire.transport.nats as nats_transport
from eventwire.transport.nats import NATSTransport


@dataclass
class FakeBroker:
    subscriptions: dict[str, list[Any]] = field(default_factory=dict)
    refuse_connect: bool = False
    fail_subscribe: bool = False
    fail_drain: bool = False
    max_payload: int = 1_000_000
    flushes: int = 0


class FakeNATS:
    """Mimics the parts of ``nats.aio.client.Client`` the transport uses."""

    def __init__(self, broker: FakeBroker) -> None:
        self._broker = broker
        self.is_connected = False

    async def connect(self, servers: list[str]) -> None:
        if self._broker.refuse_connect:
            raise ConnectionRefusedError(f"cannot reach {servers[0]}")
        self.is_connected = True

    async def subscribe(self, subject: str, cb: Any) -> None:
        if self._broker.fail_subscribe:
            raise PermissionError(f"permissions violation for subscription to {subject}")
        self._broker.subscriptions.setdefault(subject, []).append(cb)

    async def publish(self, subject: str, payload: bytes) -> None:
        if len(payload) > self._broker.max_payload:
            raise ValueError("nats: maximum payload exceeded")
        for callback in list(self._broker.subscriptions.get(subject, [])):
            await callback(SimpleNamespace(subject=subject, data=payload))

    async def flush(self, timeout: float | None = None) -> None:
        self._broker.flushes += 1

    async def drain(self) -> None:
        if self._broker.fail_drain:
            raise ConnectionResetError("connection closed while draining")
        self.is_connected = False


@pytest.fixture()
def broker(monkeypatch: pytest.MonkeyPatch) -> FakeBroker:
    fake = FakeBroker()
    monkeypatch.setattr(nats_transport, "NATS", lambda: FakeNATS(fake))
    return fake


@pytest.fixture()
def connect(broker: FakeBroker) -> Iterator[Callable[[str], NATSTransport]]:
    created: list[NATSTransport] = []

    def factory(peer_id: str) -> NATSTransport:
        transport = NATSTransport("nats://localhost:4222", peer_id, flush_timeout=1.0)
        created.append(transport)
        return transport

    yield factory
    broker.fail_drain = False
    for transport in created:
        transport.close()


def _loop_thread_alive(peer_id: str) -> bool:
    return any(thread.name == f"eventwire-nats-{peer_id}" for thread in threading.enumerate())


def test_subscriptions_are_confirmed_before_first_poll_returns(
    broker: FakeBroker, connect: Callable[[str], NATSTransport]
) -> None:
    server = connect("server")
    client = connect("client")

    assert server.next_message("echo", timeout=0) is None

    assert "eventwire.all.echo" in broker.subscriptions
    assert "eventwire.peer.server.echo" in broker.subscriptions
    assert broker.flushes >= 1
    client.send_reliable("echo", "server", "hi")
    message = server.next_message("echo", timeout=1.0)
    assert message is not None
    assert message.source == "client"
    assert message.args == ("hi",)


def test_failed_subscription_raises_and_can_be_retried(
    broker: FakeBroker, connect: Callable[[str], NATSTransport]
) -> None:
    transport = connect("server")
    broker.fail_subscribe = True

    with pytest.raises(TransportError):
        transport.next_message("echo", timeout=0)

    broker.fail_subscribe = False
    assert transport.next_message("echo", timeout=0) is None
    assert "eventwire.peer.server.echo" in broker.subscriptions


def test_directed_send_to_self_arrives_but_own_broadcast_does_not(
    connect: Callable[[str], NATSTransport],
) -> None:
    transport = connect("solo")
    transport.next_message("note", timeout=0)

    transport.send_reliable("note", "solo", 1)
    message = transport.next_message("note", timeout=1.0)
    assert message is not None
    assert message.args == (1,)

    transport.send_reliable("note", BROADCAST, 2)
    assert transport.next_message("note", timeout=0.1) is None


def test_failed_unreliable_publish_is_logged(
    broker: FakeBroker,
    connect: Callable[[str], NATSTransport],
    caplog: pytest.LogCaptureFixture,
) -> None:
    transport = connect("client")
    broker.max_payload = 16

    with caplog.at_level(logging.WARNING, logger="eventwire.transport.nats"):
        transport.send_unreliable("chat", BROADCAST, "x" * 100)
        deadline = time.monotonic() + 2.0
        while time.monotonic() < deadline and not caplog.records:
            time.sleep(0.01)

    assert [record.getMessage() for record in caplog.records] == ["transport.unreliable_send_failed"]
    assert caplog.records[0].extra["event"] == "chat"


def test_failed_connect_stops_loop_thread(broker: FakeBroker) -> None:
    broker.refuse_connect = True

    with pytest.raises(TransportError):
        NATSTransport("nats://localhost:4222", "unreachable", flush_timeout=1.0)

    assert not _loop_thread_alive("unreachable")


def test_close_stops_loop_thread_even_when_drain_fails(
    broker: FakeBroker, connect: Callable[[str], NATSTransport]
) -> None:
    transport = connect("closing")
    broker.fail_drain = True

    with pytest.raises(TransportError):
        transport.close()

    assert not _loop_thread_alive("closing")
    transport.close()
