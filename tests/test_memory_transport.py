"""Tests for the in-memory network and transport wrappers."""

from __future__ import annotations

import pytest

from eventwire.contracts.types import BROADCAST, Delivery
from eventwire.core.errors import CodecError, TransportError, ValidationError
from eventwire.transport.memory import InMemoryNetwork
from eventwire.transport.recorder import RecordingTransport


@pytest.fixture()
def network() -> InMemoryNetwork:
    return InMemoryNetwork()


def test_directed_send_reaches_only_target(network: InMemoryNetwork) -> None:
    alice = network.endpoint("alice")
    bob = network.endpoint("bob")
    carol = network.endpoint("carol")
    bob.next_message("greet", timeout=0)
    carol.next_message("greet", timeout=0)

    alice.send_reliable("greet", "bob", "hi", {"n": 1})

    message = bob.next_message("greet", timeout=1.0)
    assert message is not None
    assert message.source == "alice"
    assert message.args == ("hi", {"n": 1})
    assert message.delivery is Delivery.RELIABLE
    assert carol.next_message("greet", timeout=0.05) is None


def test_broadcast_reaches_every_other_peer(network: InMemoryNetwork) -> None:
    endpoints = {name: network.endpoint(name) for name in ("a", "b", "c")}
    for endpoint in endpoints.values():
        endpoint.next_message("tick", timeout=0)

    endpoints["a"].send_unreliable("tick", BROADCAST, 1)

    assert endpoints["a"].next_message("tick", timeout=0.05) is None
    for name in ("b", "c"):
        message = endpoints[name].next_message("tick", timeout=1.0)
        assert message is not None
        assert message.args == (1,)
        assert message.delivery is Delivery.UNRELIABLE


def test_messages_before_subscription_are_not_replayed(network: InMemoryNetwork) -> None:
    sender = network.endpoint("sender")
    receiver = network.endpoint("receiver")

    sender.send_reliable("news", "receiver", "old")
    assert receiver.next_message("news", timeout=0.05) is None

    sender.send_reliable("news", "receiver", "new")
    message = receiver.next_message("news", timeout=1.0)
    assert message is not None
    assert message.args == ("new",)


def test_on_message_streams_in_order(network: InMemoryNetwork) -> None:
    sender = network.endpoint("sender")
    receiver = network.endpoint("receiver")
    stream = receiver.on_message("seq")
    receiver.next_message("seq", timeout=0)

    for value in range(3):
        sender.send_reliable("seq", "receiver", value)

    assert [next(stream).args[0] for _ in range(3)] == [0, 1, 2]


def test_send_errors_surface_to_caller(network: InMemoryNetwork) -> None:
    alice = network.endpoint("alice")

    with pytest.raises(TransportError):
        alice.send_reliable("greet", "nobody", "hi")
    with pytest.raises(ValidationError):
        alice.send_reliable("greet", None, "hi")
    with pytest.raises(ValidationError):
        alice.send_reliable("", "alice", "hi")
    with pytest.raises(CodecError):
        alice.send_reliable("greet", BROADCAST, object())

    alice.close()
    with pytest.raises(TransportError):
        alice.send_reliable("greet", BROADCAST, "hi")


def test_closed_peer_is_unreachable(network: InMemoryNetwork) -> None:
    alice = network.endpoint("alice")
    bob = network.endpoint("bob")

    bob.close()

    assert network.peers() == ["alice"]
    with pytest.raises(TransportError):
        alice.send_reliable("greet", "bob")


def test_duplicate_peer_id_is_rejected(network: InMemoryNetwork) -> None:
    network.endpoint("alice")
    with pytest.raises(TransportError):
        network.endpoint("alice")


def test_unreliable_sends_can_be_dropped_but_reliable_cannot() -> None:
    lossy = InMemoryNetwork(drop_rate=1.0, seed=7)
    sender = lossy.endpoint("sender")
    receiver = lossy.endpoint("receiver")
    receiver.next_message("pos", timeout=0)

    sender.send_unreliable("pos", "receiver", 1)
    assert receiver.next_message("pos", timeout=0.05) is None

    sender.send_reliable("pos", "receiver", 2)
    message = receiver.next_message("pos", timeout=1.0)
    assert message is not None
    assert message.args == (2,)


def test_drop_rate_is_validated() -> None:
    with pytest.raises(ValidationError):
        InMemoryNetwork(drop_rate=1.5)


def test_recording_transport_records_successful_sends(network: InMemoryNetwork) -> None:
    recorder = RecordingTransport(network.endpoint("alice"))
    network.endpoint("bob")

    recorder.send_reliable("greet", "bob", "hi")
    recorder.send_unreliable("greet", BROADCAST, "all")
    with pytest.raises(TransportError):
        recorder.send_reliable("greet", "nobody")

    assert recorder.peer_id == "alice"
    assert [(m.target, m.args, m.delivery) for m in recorder.sent_for("greet")] == [
        ("bob", ("hi",), Delivery.RELIABLE),
        (BROADCAST, ("all",), Delivery.UNRELIABLE),
    ]
