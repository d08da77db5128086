"""Probe registry — loads probes.yaml and builds typed probes.

Single source of truth for the probe list consumed by the scheduler.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from netprobe.config import settings

from .base import Probe
from .checks import build_probe

logger = logging.getLogger(__name__)


# ── Data models ──────────────────────────────────────────────────────────────


@dataclass
class ProbeDef:
    """Definition of a single probe from the registry."""

    type: str  # tls | dns | http | http_search
    host: str = ""
    port: int = 443
    resolver: str = ""  # dns only; empty = system resolver
    url: str = ""
    search: str = ""  # http_search only
    interval_seconds: float = 60.0
    timeout_seconds: float = 10.0


# ── Registry ─────────────────────────────────────────────────────────────────


class ProbeRegistry:
    """Loads and caches probe definitions from probes.yaml."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path(settings.probes_file)
        self._defs: list[ProbeDef] = []
        self._loaded = False

    @property
    def path(self) -> Path:
        return self._path

    def load(self, force: bool = False) -> list[ProbeDef]:
        """Parse probes.yaml and return the ProbeDef list."""
        if self._loaded and not force:
            return self._defs

        self._defs = []
        if not self._path.exists():
            logger.warning("Probe file not found: %s", self._path)
            self._loaded = True
            return self._defs

        try:
            raw = yaml.safe_load(self._path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            logger.error("Failed to parse %s: %s", self._path, e)
            self._loaded = True
            return self._defs

        if not isinstance(raw, dict):
            logger.error("%s must be a mapping with a 'probes' list", self._path)
            self._loaded = True
            return self._defs

        for entry in raw.get("probes", []) or []:
            try:
                self._defs.append(_parse_probe_def(entry))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning("Skipping malformed probe entry %r: %s", entry, e)

        self._loaded = True
        logger.info("Loaded %d probe definitions from %s", len(self._defs), self._path)
        return self._defs

    @property
    def definitions(self) -> list[ProbeDef]:
        return self.load()

    def probes(self) -> list[Probe]:
        """Build a probe for every valid definition."""
        built: list[Probe] = []
        for d in self.definitions:
            try:
                built.append(build_probe(d))
            except ValueError as e:
                logger.warning("Skipping invalid %s probe: %s", d.type, e)
        return built

    def reload(self) -> list[ProbeDef]:
        """Force reload from disk."""
        return self.load(force=True)


# ── Parsers ──────────────────────────────────────────────────────────────────


def _parse_probe_def(raw: dict[str, Any]) -> ProbeDef:
    return ProbeDef(
        type=str(raw["type"]).strip().lower(),
        host=str(raw.get("host", "")),
        port=int(raw.get("port", 443)),
        resolver=str(raw.get("resolver") or ""),
        url=str(raw.get("url", "")),
        search=str(raw.get("search", "")),
        interval_seconds=float(raw.get("interval_seconds", 60)),
        timeout_seconds=float(raw.get("timeout_seconds", settings.probe_timeout_seconds)),
    )
