"""One health-check run: pools → SMART self-tests → free space → notify.

Meant to be triggered by cron. The first failing step ends the run and its
error text becomes the body of a single "Health check failed!" message.
A clean run only notifies inside the weekly heartbeat window.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime

from heartbeat.commands import CommandError, Executor, run_command
from heartbeat.config import settings
from heartbeat.notifications import Notifier
from heartbeat.smart import DiskAges, ThresholdBreach, analyze
from heartbeat.usage import MissingPoolError, disk_usage, format_usage
from heartbeat.zpool import HealthFault, ParseError, evaluate, parse_pools

logger = logging.getLogger(__name__)

FAILED_TITLE = "Health check failed!"
HEARTBEAT_TITLE = "Heartbeat"

CHECK_ERRORS = (ParseError, HealthFault, ThresholdBreach, CommandError, MissingPoolError)


@dataclass
class RunResult:
    healthy: bool
    message: str
    notified: bool = False


def should_send_heartbeat(now: datetime) -> bool:
    return (
        now.weekday() == settings.heartbeat_weekday
        and now.hour == settings.heartbeat_hour
        and now.minute <= settings.heartbeat_minute_max
    )


def check_pools(executor: Executor) -> None:
    """Raise ParseError or HealthFault unless every pool is healthy."""
    pools = parse_pools(executor(settings.zpool_binary, "status"))
    evaluate(pools).raise_for_fault()


def selftest_logs(executor: Executor, disks: list[str]) -> Iterator[tuple[str, str]]:
    for disk in disks:
        yield disk, executor(settings.smartctl_binary, "-l", "selftest", f"/dev/{disk}")


def check_smart(executor: Executor) -> DiskAges:
    return analyze(selftest_logs(executor, settings.smart_disks))


def check_usage(executor: Executor) -> dict[str, str]:
    return disk_usage(executor(settings.zfs_binary, "list"), settings.usage_pools)


def heartbeat_message(ages: DiskAges, usage: dict[str, str]) -> str:
    return (
        f"Disk age: {ages.youngest_years:.2f}-{ages.oldest_years:.2f} years\n"
        f"Free Space: {format_usage(usage)}"
    )


def run_heartbeat(
    executor: Executor = run_command,
    notifier: Notifier | None = None,
    now: datetime | None = None,
) -> RunResult:
    notifier = notifier or Notifier()
    now = now or datetime.now()
    logger.info("Running heartbeat job...")

    try:
        check_pools(executor)
        ages = check_smart(executor)
        usage = check_usage(executor)
    except CHECK_ERRORS as exc:
        logger.error("Health check failed: %s", exc)
        notified = notifier.notify_sync(FAILED_TITLE, str(exc), now)
        return RunResult(healthy=False, message=str(exc), notified=notified)

    message = heartbeat_message(ages, usage)
    logger.info(message)

    notified = False
    if should_send_heartbeat(now):
        notified = notifier.notify_sync(HEARTBEAT_TITLE, message, now)
    return RunResult(healthy=True, message=message, notified=notified)
