"""Health subsystem — per-probe state machine and scheduler."""

from .scheduler import ProbeScheduler, draw_jitter, format_interval
from .state import EventKind, HealthEvent, HealthState, HealthTracker
