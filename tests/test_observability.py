"""Tests for metrics rendering and JSON log formatting."""

from __future__ import annotations

import json
import logging

from eventwire.observability.logging import JsonFormatter
from eventwire.observability.metrics import Counter, Histogram, render_metrics


def test_counter_and_histogram_render_labels() -> None:
    counter = Counter(name="demo_total", description="Demo", label_names=("event", "outcome"))
    counter.labels(event="echo", outcome="replied").inc()
    counter.labels(event="echo", outcome="replied").inc(2)
    histogram = Histogram(name="demo_seconds", description="Demo", label_names=("event",))
    with histogram.labels(event="echo").time():
        pass

    counter_lines = counter.render()
    histogram_lines = histogram.render()

    assert 'demo_total{event="echo",outcome="replied"} 3.0' in counter_lines
    assert 'demo_seconds_count{event="echo"} 1' in histogram_lines


def test_render_metrics_lists_builtin_metrics() -> None:
    text = render_metrics()
    for name in (
        "eventwire_listener_errors_total",
        "eventwire_requests_total",
        "eventwire_replies_discarded_total",
        "eventwire_request_duration_seconds",
    ):
        assert f"# TYPE {name}" in text


def test_json_formatter_merges_structured_fields() -> None:
    record = logging.LogRecord(
        name="eventwire.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="request.replied",
        args=(),
        exc_info=None,
    )
    record.extra = {"event": "echo", "request_id": "abc"}

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "request.replied"
    assert payload["level"] == "INFO"
    assert payload["event"] == "echo"
    assert payload["request_id"] == "abc"
