"""Probe scheduler — one independent loop per probe, fixed cadence plus jitter.

Each loop owns its HealthTracker and its own random generator; nothing is
shared between loops. Blocking ``run()`` calls execute in a thread pool
sized to the number of probes, so every probe can sit in network I/O at the
same time without holding up the others.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import random
from collections.abc import Callable, Sequence
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any

from netprobe.probes.base import Probe, RunOutcome

from .state import EventKind, HealthEvent, HealthTracker

logger = logging.getLogger(__name__)

DEFAULT_JITTER_MAX_MS = 500


def draw_jitter(rng: random.Random, max_ms: int = DEFAULT_JITTER_MAX_MS) -> float:
    """Uniform whole-millisecond delay in ``[0, max_ms)``, returned in seconds."""
    if max_ms <= 0:
        return 0.0
    return rng.randrange(max_ms) / 1000


def format_interval(seconds: float) -> str:
    """Compact duration string: ``250ms``, ``20s``, ``1m30s``, ``1h0m0s``."""
    seconds = round(seconds, 3)
    if seconds < 1:
        return f"{round(seconds * 1000)}ms"
    hours, rem = divmod(seconds, 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f"{int(hours)}h{int(minutes)}m{secs:g}s"
    if minutes:
        return f"{int(minutes)}m{secs:g}s"
    return f"{secs:g}s"


def next_tick(previous: float, interval: float, now: float) -> float:
    """First cadence boundary after ``now``.

    Boundaries that passed while a slow run was in flight are dropped rather
    than fired back to back.
    """
    upcoming = previous + interval
    if upcoming <= now:
        missed = int((now - previous) // interval)
        upcoming = previous + (missed + 1) * interval
    return upcoming


class ProbeScheduler:
    """Runs every probe on its own cadence until stopped.

    Lifecycle:
        scheduler = ProbeScheduler(probes, on_event=notifier.handle_event)
        await scheduler.start()
        await scheduler.wait()   # returns once request_stop() / stop() is called
        await scheduler.stop()
    """

    def __init__(
        self,
        probes: Sequence[Probe],
        on_event: Callable[[HealthEvent], Any] | None = None,
        jitter_max_ms: int = DEFAULT_JITTER_MAX_MS,
        rng_factory: Callable[[], random.Random] = random.Random,
    ) -> None:
        self.probes = list(probes)
        self.on_event = on_event  # sync or async callable
        self.jitter_max_ms = jitter_max_ms
        self._rng_factory = rng_factory
        self._executor: ThreadPoolExecutor | None = None
        self._tasks: list[asyncio.Task[None]] = []
        self._stop = asyncio.Event()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Spawn one loop per probe."""
        if self._running:
            return
        self._running = True
        self._stop = asyncio.Event()

        if not self.probes:
            logger.info("No probes configured — scheduler idle")
            return

        self._executor = ThreadPoolExecutor(max_workers=len(self.probes), thread_name_prefix="probe")
        for probe in self.probes:
            task = asyncio.create_task(self._probe_loop(probe), name=f"probe-{probe.name()}")
            self._tasks.append(task)

        logger.info("Probe scheduler started: %d probes", len(self.probes))

    def request_stop(self) -> None:
        """Ask every loop to exit at its next suspension point. Safe from signal handlers."""
        self._stop.set()

    async def wait(self) -> None:
        """Block until a stop is requested. Without one, this never returns."""
        await self._stop.wait()

    async def stop(self) -> None:
        """Stop all probe loops."""
        if not self._running:
            return
        self._running = False
        self._stop.set()
        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None
        logger.info("Probe scheduler stopped")

    async def run_all_now(self) -> list[tuple[Probe, RunOutcome]]:
        """Run every probe once, concurrently (one-shot check)."""
        if not self.probes:
            return []
        with ThreadPoolExecutor(max_workers=len(self.probes), thread_name_prefix="probe") as pool:
            outcomes = await asyncio.gather(*(self._execute(p, pool) for p in self.probes))
        return list(zip(self.probes, outcomes))

    # -- Internals -------------------------------------------------------------

    async def _probe_loop(self, probe: Probe) -> None:
        """Persistent loop for a single probe: tick, jitter, run, fold outcome."""
        name = probe.name()
        interval = probe.interval()
        rng = self._rng_factory()
        tracker = HealthTracker(name)
        loop = asyncio.get_running_loop()

        logger.info("Starting probe: %s with interval %s", name, format_interval(interval))

        tick = loop.time() + interval
        while True:
            if await self._sleep(tick - loop.time()):
                break
            if await self._sleep(draw_jitter(rng, self.jitter_max_ms)):
                break

            logger.info("Probe: %s (last observed state: %s)", name, tracker.state.value)
            outcome = await self._execute(probe, self._executor)
            if outcome.ok:
                logger.info("%s (%.0fms)", outcome.message, outcome.latency_ms)

            event = tracker.observe(outcome)
            if event is not None:
                await self._emit(event)

            tick = next_tick(tick, interval, loop.time())

    async def _sleep(self, delay: float) -> bool:
        """Sleep up to ``delay`` seconds. True if a stop was requested."""
        if delay <= 0:
            return self._stop.is_set()
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return False
        return True

    async def _execute(self, probe: Probe, executor: Executor | None) -> RunOutcome:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(executor, probe.run)
        except Exception as e:
            # A crashing probe is indistinguishable from an unreachable target.
            logger.exception("Probe %s raised during run", probe.name())
            return RunOutcome.failure("unknown", f"{type(e).__name__}: {e}")

    async def _emit(self, event: HealthEvent) -> None:
        level = logging.WARNING if event.kind is EventKind.FAILED else logging.INFO
        logger.log(
            level,
            "%s",
            event.message(),
            extra={"probe": event.probe_name, "event": event.kind.value, "notify": event.notify},
        )

        if self.on_event is None:
            return
        try:
            result = self.on_event(event)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Event callback error for %s", event.probe_name)
