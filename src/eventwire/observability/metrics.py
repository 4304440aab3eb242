"""Prometheus-style metrics utilities without external dependencies."""

from __future__ import annotations

from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, HTTPServer
from threading import Lock, Thread
import time
from types import TracebackType


@dataclass
class _LabeledCounter:
    value: float = 0.0
    _lock: Lock = field(default_factory=Lock, repr=False)

    def inc(self, amount: float = 1.0) -> None:
        with self._lock:
            self.value += amount


@dataclass
class _LabeledHistogram:
    count: int = 0
    total: float = 0.0
    _lock: Lock = field(default_factory=Lock, repr=False)

    def observe(self, value: float) -> None:
        with self._lock:
            self.count += 1
            self.total += value

    def time(self) -> _Timer:
        return _Timer(self)


@dataclass
class Counter:
    name: str
    description: str
    label_names: tuple[str, ...]
    values: dict[tuple[str, ...], _LabeledCounter] = field(default_factory=dict)
    _lock: Lock = field(default_factory=Lock, repr=False)

    def labels(self, **labels: str) -> _LabeledCounter:
        key = tuple(labels[name] for name in self.label_names)
        with self._lock:
            if key not in self.values:
                self.values[key] = _LabeledCounter()
            return self.values[key]

    def render(self) -> list[str]:
        lines = [f"# HELP {self.name} {self.description}", f"# TYPE {self.name} counter"]
        for labels, counter in list(self.values.items()):
            lines.append(f"{self.name}{{{_label_str(self.label_names, labels)}}} {counter.value}")
        return lines


@dataclass
class Histogram:
    name: str
    description: str
    label_names: tuple[str, ...]
    values: dict[tuple[str, ...], _LabeledHistogram] = field(default_factory=dict)
    _lock: Lock = field(default_factory=Lock, repr=False)

    def labels(self, **labels: str) -> _LabeledHistogram:
        key = tuple(labels[name] for name in self.label_names)
        with self._lock:
            if key not in self.values:
                self.values[key] = _LabeledHistogram()
            return self.values[key]

    def render(self) -> list[str]:
        lines = [f"# HELP {self.name} {self.description}", f"# TYPE {self.name} summary"]
        for labels, histogram in list(self.values.items()):
            label_str = _label_str(self.label_names, labels)
            lines.append(f"{self.name}_count{{{label_str}}} {histogram.count}")
            lines.append(f"{self.name}_sum{{{label_str}}} {histogram.total}")
        return lines


def _label_str(names: tuple[str, ...], values: tuple[str, ...]) -> str:
    return ",".join(f'{name}="{value}"' for name, value in zip(names, values))


LISTENER_ERRORS = Counter(
    name="eventwire_listener_errors_total",
    description="Listener invocations that raised during a signal fire",
    label_names=("signal",),
)

REQUESTS = Counter(
    name="eventwire_requests_total",
    description="Completed requests by outcome",
    label_names=("event", "outcome"),
)

REPLIES_DISCARDED = Counter(
    name="eventwire_replies_discarded_total",
    description="Replies dropped because no pending request matched",
    label_names=("reason",),
)

REQUEST_DURATION = Histogram(
    name="eventwire_request_duration_seconds",
    description="Time from sending a request until it resolved",
    label_names=("event",),
)

ALL_METRICS: tuple[Counter | Histogram, ...] = (
    LISTENER_ERRORS,
    REQUESTS,
    REPLIES_DISCARDED,
    REQUEST_DURATION,
)


class _MetricsHandler(BaseHTTPRequestHandler):
    def do_GET(self) -> None:  # noqa: N802
        if self.path != "/metrics":
            self.send_response(404)
            self.end_headers()
            return
        body = render_metrics().encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", "text/plain; version=0.0.4")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)


_server_thread: Thread | None = None


def start_metrics_server(port: int = 8005) -> None:
    """Start a lightweight Prometheus-style metrics server."""
    global _server_thread
    if _server_thread:
        return

    server = HTTPServer(("0.0.0.0", port), _MetricsHandler)

    def _run() -> None:
        server.serve_forever()

    _server_thread = Thread(target=_run, daemon=True)
    _server_thread.start()


def render_metrics() -> str:
    lines: list[str] = []
    for metric in ALL_METRICS:
        lines.extend(metric.render())
    return "\n".join(lines) + "\n"


class _Timer:
    def __init__(self, histogram: _LabeledHistogram) -> None:
        self._histogram = histogram
        self._start: float | None = None

    def __enter__(self) -> _Timer:
        self._start = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._start is None:
            return
        duration = time.perf_counter() - self._start
        self._histogram.observe(duration)
