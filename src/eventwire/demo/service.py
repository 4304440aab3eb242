"""Long-running echo responder on the configured transport."""

from __future__ import annotations

import logging
from threading import Event as ThreadEvent

from eventwire.demo.runner import ECHO_EVENT
from eventwire.observability.logging import configure_logging
from eventwire.observability.metrics import start_metrics_server
from eventwire.observability.telemetry import setup_tracing
from eventwire.runtime.node import create_node
from eventwire.settings import get_settings

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    setup_tracing("eventwire-service")
    start_metrics_server(port=settings.metrics_port)

    stop_event = ThreadEvent()
    with create_node(settings) as node:
        node.handle(ECHO_EVENT, lambda source, *args: args)
        logger.info(
            "service.ready",
            extra={"extra": {"peer": node.peer_id, "event": ECHO_EVENT}},
        )
        try:
            stop_event.wait()
        except KeyboardInterrupt:
            logger.info("service.stopping", extra={"extra": {"peer": node.peer_id}})


if __name__ == "__main__":
    main()
