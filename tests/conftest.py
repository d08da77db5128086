"""Shared test fixtures."""

from __future__ import annotations

import socket
import threading
from collections.abc import Generator, Sequence

import pytest

from netprobe.probes.base import RunOutcome


def ok(message: str = "ok") -> RunOutcome:
    return RunOutcome.success("fake", message)


def fail(error: str = "boom") -> RunOutcome:
    return RunOutcome.failure("fake", error)


class ScriptedProbe:
    """Probe that replays a fixed list of outcomes, then keeps succeeding."""

    def __init__(self, outcomes: Sequence[RunOutcome], interval: float = 0.01, name: str = "scripted") -> None:
        self._outcomes = list(outcomes)
        self._interval = interval
        self._name = name
        self._lock = threading.Lock()
        self.calls = 0

    def run(self) -> RunOutcome:
        with self._lock:
            idx = self.calls
            self.calls += 1
        if idx < len(self._outcomes):
            return self._outcomes[idx]
        return ok()

    def interval(self) -> float:
        return self._interval

    def name(self) -> str:
        return self._name


@pytest.fixture
def refused_port() -> int:
    """A localhost port with nothing listening on it."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def silent_port() -> Generator[int, None, None]:
    """A localhost port that accepts TCP connections but never speaks TLS."""
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.bind(("127.0.0.1", 0))
    server.listen(8)
    try:
        yield server.getsockname()[1]
    finally:
        server.close()
