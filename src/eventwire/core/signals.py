"""Minimal publish/subscribe primitive with blocking waits.

Usage:
    changed = Signal("file.changed")

    def on_changed(path):
        print(f"File changed: {path}")

    connection = changed.connect(on_changed)
    changed.fire("/path/to/file")
    connection.disconnect()

    # Block the current thread until the next fire (or 2 seconds pass).
    args = changed.wait(2.0)
    if args is TIMED_OUT:
        ...

Listeners run on the firing thread, outside the signal's lock, against a
snapshot of the connections taken when ``fire`` was called.
"""

from __future__ import annotations

from collections.abc import Callable
import logging
from threading import Event as ThreadEvent, Lock
from typing import Any

from eventwire.contracts.types import TIMED_OUT, TimeoutIndicator
from eventwire.core.errors import DestroyedSignalError, require_timeout
from eventwire.observability.metrics import LISTENER_ERRORS

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]
WaitResult = tuple[Any, ...] | TimeoutIndicator


class Connection:
    """Handle for one listener registered on one signal."""

    __slots__ = ("_signal", "listener", "once", "_connected")

    def __init__(self, signal: Signal, listener: Listener, *, once: bool = False) -> None:
        self._signal = signal
        self.listener = listener
        self.once = once
        self._connected = True

    @property
    def connected(self) -> bool:
        return self._connected

    def disconnect(self) -> None:
        """Stop receiving fires. Safe to call any number of times."""
        self._signal._remove(self)

    def __repr__(self) -> str:
        state = "connected" if self._connected else "disconnected"
        return f"<Connection {getattr(self.listener, '__qualname__', self.listener)!r} {state}>"


class Waiter:
    """A single armed wait; exactly one of fire, destroy or timeout resolves it."""

    __slots__ = ("_lock", "_done", "_value")

    def __init__(self) -> None:
        self._lock = Lock()
        self._done = ThreadEvent()
        self._value: WaitResult = TIMED_OUT

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def resolve(self, value: WaitResult) -> bool:
        """Store ``value`` unless the waiter already resolved. Returns True if it won."""
        with self._lock:
            if self._done.is_set():
                return False
            self._value = value
            self._done.set()
            return True

    def result(self, timeout: float | None = None) -> WaitResult:
        """Block until resolved, or until ``timeout`` seconds pass."""
        if not self._done.wait(timeout):
            self.resolve(TIMED_OUT)
        return self._value


class Signal:
    """Ordered set of listeners fired with arbitrary positional arguments."""

    def __init__(self, name: str | None = None) -> None:
        self.name = name
        self._connections: list[Connection] = []
        self._waiters: list[Waiter] = []
        self._lock = Lock()
        self._destroyed = False

    def __repr__(self) -> str:
        return f"<Signal {self.name or hex(id(self))} listeners={self.listener_count}>"

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._connections)

    def connect(self, listener: Listener) -> Connection:
        """Register ``listener`` for every future fire."""
        return self._add(listener, once=False)

    def once(self, listener: Listener) -> Connection:
        """Register ``listener`` for the next fire only."""
        return self._add(listener, once=True)

    def fire(self, *args: Any) -> None:
        """Invoke every connected listener in connection order, then release waiters."""
        with self._lock:
            if self._destroyed:
                return
            snapshot = list(self._connections)
            waiters, self._waiters = self._waiters, []

        for connection in snapshot:
            if not self._claim(connection):
                continue
            try:
                connection.listener(*args)
            except Exception:
                LISTENER_ERRORS.labels(signal=self.name or "anonymous").inc()
                logger.exception(
                    "signal.listener_failed",
                    extra={
                        "extra": {
                            "signal": self.name,
                            "listener": getattr(connection.listener, "__qualname__", None),
                        }
                    },
                )

        for waiter in waiters:
            waiter.resolve(args)

    def waiter(self) -> Waiter:
        """Arm a wait for the next fire without blocking yet.

        A waiter armed on a destroyed signal is already resolved with
        ``TIMED_OUT``.
        """
        waiter = Waiter()
        with self._lock:
            if not self._destroyed:
                self._waiters.append(waiter)
                return waiter
        waiter.resolve(TIMED_OUT)
        return waiter

    def wait(self, timeout: float | None = None) -> WaitResult:
        """Block until the next fire and return its arguments.

        Returns ``TIMED_OUT`` if ``timeout`` seconds pass first or the
        signal is destroyed while waiting.
        """
        if timeout is not None:
            timeout = require_timeout(timeout, allow_zero=True)
        waiter = self.waiter()
        value = waiter.result(timeout)
        if value is TIMED_OUT:
            with self._lock:
                if waiter in self._waiters:
                    self._waiters.remove(waiter)
        return value

    def has_listeners(self) -> bool:
        with self._lock:
            return bool(self._connections)

    def disconnect_all(self) -> None:
        """Drop every connection; the signal stays usable."""
        with self._lock:
            connections, self._connections = self._connections, []
            for connection in connections:
                connection._connected = False

    def destroy(self) -> None:
        """Disconnect everything, refuse new connections and release all waiters."""
        with self._lock:
            if self._destroyed:
                return
            self._destroyed = True
            connections, self._connections = self._connections, []
            waiters, self._waiters = self._waiters, []
            for connection in connections:
                connection._connected = False
        for waiter in waiters:
            waiter.resolve(TIMED_OUT)

    def _add(self, listener: Listener, *, once: bool) -> Connection:
        if not callable(listener):
            raise TypeError(f"listener must be callable, got {type(listener).__name__}")
        with self._lock:
            if self._destroyed:
                raise DestroyedSignalError(f"signal {self.name!r} was destroyed")
            connection = Connection(self, listener, once=once)
            self._connections.append(connection)
        return connection

    def _claim(self, connection: Connection) -> bool:
        # A once connection is removed before its listener runs so that
        # re-entrant fires cannot reach it a second time.
        with self._lock:
            if not connection._connected:
                return False
            if connection.once:
                self._detach(connection)
            return True

    def _remove(self, connection: Connection) -> None:
        with self._lock:
            if connection._connected:
                self._detach(connection)

    def _detach(self, connection: Connection) -> None:
        connection._connected = False
        self._connections.remove(connection)
