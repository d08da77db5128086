"""Entry point for the netprobe daemon."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from netprobe.config import settings
from netprobe.health.scheduler import ProbeScheduler, format_interval
from netprobe.notifications import get_notifier
from netprobe.probes.base import Probe
from netprobe.probes.registry import ProbeRegistry

console = Console()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


async def run_daemon(probes: list[Probe]) -> None:
    """Start one loop per probe and block until SIGINT / SIGTERM."""
    notifier = get_notifier()
    scheduler = ProbeScheduler(
        probes,
        on_event=notifier.handle_event,
        jitter_max_ms=settings.jitter_max_ms,
    )

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, scheduler.request_stop)
        except NotImplementedError:  # Windows
            pass

    await scheduler.start()
    try:
        await scheduler.wait()
    finally:
        await scheduler.stop()


def run_server(probes: list[Probe]) -> int:
    """Run the prober until interrupted."""
    notifier = get_notifier()
    status = notifier.status()
    channels = [name for name in ("slack", "telegram") if status[f"{name}_configured"]]
    channels_str = ", ".join(channels) or "log only"
    console.print(Panel(f"Starting netprobe: {len(probes)} probes ({channels_str})", style="bold green"))
    asyncio.run(run_daemon(probes))
    return 0


def run_check(probes: list[Probe]) -> int:
    """Run every probe once and print a summary table."""
    results = asyncio.run(ProbeScheduler(probes).run_all_now())

    table = Table(title="Probe results")
    table.add_column("Probe")
    table.add_column("Status")
    table.add_column("Latency", justify="right")
    table.add_column("Detail")
    for probe, outcome in results:
        status = "[green]good[/green]" if outcome.ok else "[red]bad[/red]"
        detail = outcome.message if outcome.ok else (outcome.error or "")
        table.add_row(probe.name(), status, f"{outcome.latency_ms:.0f}ms", detail)
    console.print(table)

    return 0 if all(outcome.ok for _, outcome in results) else 1


def run_list(probes: list[Probe]) -> int:
    """Print configured probes and their cadence."""
    table = Table(title="Configured probes")
    table.add_column("Probe")
    table.add_column("Interval", justify="right")
    for probe in probes:
        table.add_row(probe.name(), format_interval(probe.interval()))
    console.print(table)
    return 0


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="netprobe: edge-triggered network health prober")
    parser.add_argument("--config", type=Path, default=None, help="Path to probes.yaml")
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level (default: %(default)s)")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("run", help="Run all probes until interrupted (default)")
    sub.add_parser("check", help="Run every probe once and exit non-zero on any failure")
    sub.add_parser("list", help="List configured probes")

    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    registry = ProbeRegistry(args.config)
    probes = registry.probes()
    if not probes:
        console.print(f"[bold red]No valid probes configured in {registry.path}[/bold red]")
        sys.exit(1)

    if args.command == "check":
        sys.exit(run_check(probes))
    elif args.command == "list":
        sys.exit(run_list(probes))
    else:
        sys.exit(run_server(probes))


if __name__ == "__main__":
    main()
