"""Probe contract — what every check variant exposes to the scheduler.

A probe is run once per tick, reports a fixed cadence and a stable display
name. Ordinary network failures come back as a failed ``RunOutcome``; they
are never raised.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol, runtime_checkable


@dataclass
class RunOutcome:
    """Result of a single probe execution."""

    ok: bool
    check_type: str
    message: str = ""
    error: str | None = None
    latency_ms: float = 0.0
    timestamp: str = ""

    def __post_init__(self) -> None:
        if not self.timestamp:
            self.timestamp = datetime.now(timezone.utc).isoformat()

    @classmethod
    def success(cls, check_type: str, message: str, latency_ms: float = 0.0) -> RunOutcome:
        return cls(ok=True, check_type=check_type, message=message, latency_ms=round(latency_ms, 1))

    @classmethod
    def failure(cls, check_type: str, error: str, latency_ms: float = 0.0) -> RunOutcome:
        return cls(ok=False, check_type=check_type, error=error, latency_ms=round(latency_ms, 1))


@runtime_checkable
class Probe(Protocol):
    """Anything that can be run once, has a cadence and a name."""

    def run(self) -> RunOutcome:
        """Execute one blocking check attempt."""
        ...

    def interval(self) -> float:
        """Seconds between runs. Constant for the probe's lifetime."""
        ...

    def name(self) -> str:
        """Human-readable identifier used in logs and notifications."""
        ...
