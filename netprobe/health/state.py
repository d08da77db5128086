"""Per-probe health state machine with edge-triggered events.

Two states, GOOD and BAD. A tracker starts GOOD and only emits an event when
an outcome arrives while BAD or flips the state. Repeated failures produce a
STILL_FAILING event that is marked non-notifying, so alert volume is bounded
by the number of transitions, not by the number of runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from netprobe.probes.base import RunOutcome


class HealthState(str, Enum):
    GOOD = "good"
    BAD = "bad"


class EventKind(str, Enum):
    FAILED = "failed"
    STILL_FAILING = "still_failing"
    RECOVERED = "recovered"


@dataclass(frozen=True)
class HealthEvent:
    """Something worth logging about a probe's health.

    For FAILED / STILL_FAILING ``error`` is the latest error; for RECOVERED it
    is the error the probe recovered from.
    """

    probe_name: str
    kind: EventKind
    error: str
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def notify(self) -> bool:
        return self.kind is not EventKind.STILL_FAILING

    def message(self) -> str:
        if self.kind is EventKind.FAILED:
            return f"Probe {self.probe_name} failed: {self.error}"
        if self.kind is EventKind.STILL_FAILING:
            return f"Probe {self.probe_name} still failing: {self.error} (no additional notification)"
        return f"Probe {self.probe_name} recovered from failure: {self.error}"


class HealthTracker:
    """Current health + last error for one probe.

    Owned by that probe's scheduler task; no locking.
    """

    def __init__(self, probe_name: str) -> None:
        self.probe_name = probe_name
        self.state = HealthState.GOOD
        self.last_error: str | None = None

    def observe(self, outcome: RunOutcome) -> HealthEvent | None:
        """Fold one run outcome into the state. Returns the event, if any."""
        if not outcome.ok:
            error = outcome.error or "unknown error"
            kind = EventKind.FAILED if self.state is HealthState.GOOD else EventKind.STILL_FAILING
            self.state = HealthState.BAD
            self.last_error = error
            return HealthEvent(self.probe_name, kind, error)

        if self.state is HealthState.BAD:
            previous = self.last_error or "unknown error"
            self.state = HealthState.GOOD
            self.last_error = None
            return HealthEvent(self.probe_name, EventKind.RECOVERED, previous)

        return None
