"""
Pytest fixtures for Vibe Pulse tests.

No network: the channel runs on an in-memory FakeConnection, the producer on a
recording transport, and env-driven config starts from a clean VIBE_* slate.
"""

from __future__ import annotations

import threading
from typing import Any

import pytest

from vibe_pulse.core.exceptions import TransportFailure
from vibe_pulse.realtime.channel import DistributionChannel

WAIT_SEC = 2.0


class FakeConnection:
    """In-memory stand-in for the websocket: records emits, lets tests push inbound events."""

    def __init__(self, sink) -> None:
        self._sink = sink
        self.emitted: list[tuple[str, Any]] = []
        self.closed = False

    def emit(self, event: str, payload: Any) -> None:
        self.emitted.append((event, payload))

    def close(self) -> None:
        self.closed = True

    def push(self, event: str, payload: Any) -> None:
        self._sink(event, payload)


class RecordingTransport:
    """Collects submitted envelopes; raises TransportFailure when fail is set."""

    def __init__(self) -> None:
        self.envelopes = []
        self.fail = False
        self.submitted = threading.Event()

    def submit(self, envelope) -> None:
        if self.fail:
            raise TransportFailure("gateway unavailable", status_code=503)
        self.envelopes.append(envelope)
        self.submitted.set()


class Collector:
    """Thread-safe handler that records updates and signals when n have arrived."""

    def __init__(self, expected: int = 1) -> None:
        self.items = []
        self._expected = expected
        self._lock = threading.Lock()
        self.done = threading.Event()

    def __call__(self, item) -> None:
        with self._lock:
            self.items.append(item)
            if len(self.items) >= self._expected:
                self.done.set()

    def wait(self, timeout: float = WAIT_SEC) -> bool:
        return self.done.wait(timeout)


@pytest.fixture(autouse=True)
def clean_vibe_env(monkeypatch):
    """Unset VIBE_* variables so defaults apply unless a test sets them."""
    import os

    for key in list(os.environ):
        if key.startswith("VIBE_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def connections():
    """Every FakeConnection opened by the channel fixture, in creation order."""
    return []


@pytest.fixture
def channel(connections):
    def factory(sink):
        conn = FakeConnection(sink)
        connections.append(conn)
        return conn

    ch = DistributionChannel(factory)
    yield ch
    ch.close()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def make_collector():
    """Factory for Collector handlers: make_collector(expected=n)."""
    return Collector
