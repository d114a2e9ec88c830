"""Entry point for the ZFS heartbeat health check."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from heartbeat import __version__
from heartbeat.commands import CommandError, run_command
from heartbeat.config import settings
from heartbeat.runner import run_heartbeat
from heartbeat.smart import ThresholdBreach, analyze
from heartbeat.zpool import ParseError, Pool, evaluate, parse_pools
from heartbeat.zpool.health import disk_healthy, pool_healthy, vdev_healthy

console = Console()
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)


def _mark(healthy: bool) -> str:
    return "[green]ok[/green]" if healthy else "[bold red]FAULT[/bold red]"


def _pool_table(pools: list[Pool]) -> Table:
    table = Table(title="zpool status")
    table.add_column("Device")
    table.add_column("Kind")
    table.add_column("State")
    table.add_column("R|W|C")
    table.add_column("Health")
    table.add_column("Message")

    for pool in pools:
        table.add_row(f"[bold]{pool.name}[/bold]", "pool", pool.state, str(pool.counters), _mark(pool_healthy(pool)), escape(pool.errors))
        for vdev in pool.groups:
            table.add_row(f"  {vdev.name}", vdev.kind.value, vdev.state, str(vdev.counters or ""), _mark(vdev_healthy(vdev)), "")
            for disk in vdev.disks:
                table.add_row(
                    f"    {disk.name}", "disk", disk.state, str(disk.counters or ""),
                    _mark(disk_healthy(disk, vdev.kind)), escape(disk.message),
                )
    return table


def run_once() -> int:
    """Run a full health check (the cron entry point)."""
    result = run_heartbeat()
    style = "bold green" if result.healthy else "bold red"
    console.print(Panel(escape(result.message), title="Heartbeat", style=style))
    return 0 if result.healthy else 1


def show_pools(path: str | None) -> int:
    """Parse `zpool status` output from a file (or the live command) and show it."""
    try:
        text = Path(path).read_text(encoding="utf-8") if path else run_command(settings.zpool_binary, "status")
        pools = parse_pools(text)
    except (ParseError, CommandError, OSError) as e:
        console.print(f"[bold red]{escape(str(e))}[/bold red]")
        return 1

    console.print(_pool_table(pools))
    report = evaluate(pools)
    if report.healthy:
        console.print("[bold green]All pools healthy[/bold green]")
        return 0
    console.print(Panel(escape(report.payload), title="Diagnostics", style="bold red"))
    return 1


def show_smart(paths: list[str]) -> int:
    """Analyze saved `smartctl -l selftest` logs; file stems name the disks."""
    logs = ((Path(p).stem, Path(p).read_text(encoding="utf-8")) for p in paths)
    try:
        ages = analyze(logs)
    except (ThresholdBreach, OSError) as e:
        console.print(f"[bold red]{escape(str(e))}[/bold red]")
        return 1

    console.print(
        f"Disk age: {ages.youngest_years:.2f}-{ages.oldest_years:.2f} years "
        f"[dim]({ages.youngest_hours}-{ages.oldest_hours} power-on hours)[/dim]"
    )
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="ZFS pool and SMART health check")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("run", help="Run the full health check and notify")

    pools_parser = sub.add_parser("pools", help="Parse and evaluate zpool status output")
    pools_parser.add_argument("file", nargs="?", help="Saved `zpool status` output (default: run zpool)")

    smart_parser = sub.add_parser("smart", help="Analyze saved SMART self-test logs")
    smart_parser.add_argument("files", nargs="+", help="One `smartctl -l selftest` output per disk")

    args = parser.parse_args()

    if args.command == "run":
        sys.exit(run_once())
    elif args.command == "pools":
        sys.exit(show_pools(args.file))
    elif args.command == "smart":
        sys.exit(show_smart(args.files))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
