"""Scenario runner for eventwire demos."""

from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Any

from eventwire.contracts.types import TimeoutIndicator
from eventwire.core.signals import WaitResult
from eventwire.observability.logging import configure_logging
from eventwire.observability.metrics import start_metrics_server
from eventwire.observability.telemetry import DISABLE_TRACING_ENV, setup_tracing
from eventwire.runtime.node import EventNode
from eventwire.transport.memory import InMemoryNetwork
from eventwire.transport.recorder import RecordingTransport, SentMessage

ECHO_EVENT = "demo.echo"
PING_EVENT = "demo.ping"
CLIENT_ID = "client"
SERVER_ID = "server"


@dataclass(slots=True)
class ScenarioResult:
    """Result from running a scenario."""

    scenario: str
    result: WaitResult
    sent: list[SentMessage]
    pending_after: int

    @property
    def timed_out(self) -> bool:
        return isinstance(self.result, TimeoutIndicator)


def run_scenario(
    scenario: str,
    *,
    timeout: float = 1.0,
    message: Any = "hello",
    start_metrics: bool = False,
    enable_tracing: bool = False,
) -> ScenarioResult:
    """Run a two-node scenario over an in-memory network.

    ``echo`` has the server answer with the request arguments; ``ping`` has
    nobody answering, so the request ends in ``TIMED_OUT``.
    """
    if scenario not in ("echo", "ping"):
        raise ValueError(f"unknown scenario {scenario!r}")
    configure_logging()
    if not enable_tracing:
        os.environ[DISABLE_TRACING_ENV] = "1"
    setup_tracing("eventwire-demo")
    if start_metrics:
        start_metrics_server()

    network = InMemoryNetwork()
    client_transport = RecordingTransport(network.endpoint(CLIENT_ID))
    with EventNode(client_transport) as client, EventNode(network.endpoint(SERVER_ID)) as server:
        server.handle(ECHO_EVENT, lambda source, *args: args)
        if scenario == "echo":
            result = client.request(ECHO_EVENT, timeout, message, target=SERVER_ID)
        else:
            result = client.request(PING_EVENT, timeout, target=SERVER_ID)
        pending_after = len(client.correlator)
    return ScenarioResult(
        scenario=scenario,
        result=result,
        sent=list(client_transport.sent),
        pending_after=pending_after,
    )
