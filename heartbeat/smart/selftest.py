"""SMART self-test log analysis (``smartctl -l selftest``).

Each disk's log is reduced to its self-test rows::

    Num  Test_Description    Status                  Remaining  LifeTime(hours)  LBA_of_first_error
    # 1  Short offline       Completed without error       00%     42311         -
    # 2  Extended offline    Completed without error       00%     42140         -

A disk fails the health check once the share of tests that did not
complete without error reaches the threshold. Otherwise its most recent
test (the first row) feeds the oldest/youngest disk age of the batch.
"""

from __future__ import annotations

import logging
import re
import sys
from collections.abc import Iterable
from dataclasses import dataclass

from heartbeat.config import settings

logger = logging.getLogger(__name__)

PASSED = "Completed without error"
HOURS_PER_YEAR = 24 * 365.25

_ROW = re.compile(
    r"^#[ \t]*(?P<index>\d+)[ \t]+.+?[ \t]{2,}(?P<outcome>.+?)[ \t]*\w*00%[ \t]*(?P<hours>\d+)",
    re.MULTILINE,
)


class ThresholdBreach(Exception):
    """Raised when too many self-tests of one disk have failed."""

    def __init__(self, disk: str, description: str) -> None:
        self.disk = disk
        self.description = description
        super().__init__(f"smart error: disk {disk}: {description}")


@dataclass
class SelfTestRecord:
    index: int
    outcome: str
    lifetime_hours: int

    @property
    def passed(self) -> bool:
        return self.outcome == PASSED


@dataclass
class DiskAges:
    """Power-on age range over the most recent test of every disk."""

    oldest_hours: int = 0
    youngest_hours: int = sys.maxsize

    @property
    def oldest_years(self) -> float:
        return years_from_hours(self.oldest_hours)

    @property
    def youngest_years(self) -> float:
        return years_from_hours(self.youngest_hours)


def years_from_hours(hours: int) -> float:
    return hours / HOURS_PER_YEAR


def parse_selftest_log(text: str) -> list[SelfTestRecord]:
    """Extract completed self-test rows, most recent first."""
    return [
        SelfTestRecord(
            index=int(m["index"]),
            outcome=m["outcome"],
            lifetime_hours=int(m["hours"]),
        )
        for m in _ROW.finditer(text)
    ]


def analyze(logs: Iterable[tuple[str, str]], threshold: float | None = None) -> DiskAges:
    """Check every ``(disk, selftest log)`` pair in order.

    ``logs`` is consumed lazily, so when a disk breaches the threshold the
    logs of later disks are never requested.
    """
    if threshold is None:
        threshold = settings.smart_failure_threshold
    ages = DiskAges()

    for disk, text in logs:
        records = parse_selftest_log(text)
        if not records:
            logger.warning("No self-test results for disk %s", disk)
            continue

        failures = [r for r in records if not r.passed]
        logger.debug("Disk %s: %d/%d self-tests failed", disk, len(failures), len(records))
        if len(failures) / len(records) >= threshold:
            raise ThresholdBreach(disk, failures[0].outcome)

        latest = records[0]
        ages.oldest_hours = max(ages.oldest_hours, latest.lifetime_hours)
        ages.youngest_hours = min(ages.youngest_hours, latest.lifetime_hours)

    return ages
