"""Integration tests for the demo scenarios."""

from __future__ import annotations

from eventwire.contracts.types import TIMED_OUT
from eventwire.demo.runner import ECHO_EVENT, PING_EVENT, run_scenario


def test_echo_scenario_returns_reply() -> None:
    result = run_scenario("echo", timeout=5.0, message="hi")

    assert result.result == ("hi",)
    assert not result.timed_out
    assert result.pending_after == 0
    (sent,) = result.sent
    assert sent.event == ECHO_EVENT
    assert sent.target == "server"
    request_id, payload = sent.args
    assert isinstance(request_id, str) and len(request_id) == 32
    assert payload == "hi"


def test_ping_scenario_times_out() -> None:
    result = run_scenario("ping", timeout=0.2)

    assert result.result is TIMED_OUT
    assert result.timed_out
    assert result.pending_after == 0
    assert [message.event for message in result.sent] == [PING_EVENT]
