"""Probes — the probe contract, check variants and the YAML registry."""

from .base import Probe, RunOutcome
from .checks import DnsProbe, HttpProbe, HttpSearchProbe, TlsProbe, build_probe
from .registry import ProbeDef, ProbeRegistry
