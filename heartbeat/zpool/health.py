"""Health verdict for parsed pools.

Predicates are evaluated bottom-up (disk → vdev → pool). Diagnostics are
produced top-down for every unhealthy pool: the pool line, then for each
vdev its own line when the vdev is unhealthy followed by the lines of its
unhealthy disks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .models import AVAIL, NO_KNOWN_DATA_ERRORS, ONLINE, Disk, Pool, Vdev, VdevKind

logger = logging.getLogger(__name__)


class HealthFault(Exception):
    """Raised when well-formed pool status reveals an unhealthy component."""

    def __init__(self, diagnostics: list[str]) -> None:
        self.diagnostics = diagnostics
        super().__init__("\n".join(diagnostics))


@dataclass
class HealthReport:
    healthy: bool
    diagnostics: list[str] = field(default_factory=list)

    @property
    def payload(self) -> str:
        return "\n".join(self.diagnostics)

    def raise_for_fault(self) -> None:
        if not self.healthy:
            raise HealthFault(self.diagnostics)


# ── Predicates ───────────────────────────────────────────────────────────────


def disk_healthy(disk: Disk, kind: VdevKind) -> bool:
    if kind is VdevKind.SPARE:
        return disk.state == AVAIL
    return (
        disk.state == ONLINE
        and (disk.counters is None or disk.counters.clean)
        and not disk.message
    )


def vdev_healthy(vdev: Vdev) -> bool:
    """Own state of the vdev and, for counted vdevs, of its members.

    Spare vdevs and logs/cache section headers have no state of their own
    and are always structurally healthy here; their disks are judged by
    ``pool_healthy``.
    """
    if vdev.kind is VdevKind.SPARE:
        return True
    if vdev.counters is not None:
        own = vdev.state == ONLINE and vdev.counters.clean
    else:
        own = True
    return own and all(disk_healthy(d, vdev.kind) for d in vdev.disks)


def pool_healthy(pool: Pool) -> bool:
    healthy = (
        pool.state == ONLINE
        and pool.counters.clean
        and pool.errors == NO_KNOWN_DATA_ERRORS
    )
    for vdev in pool.groups:
        healthy = healthy and vdev_healthy(vdev)
        healthy = healthy and all(disk_healthy(d, vdev.kind) for d in vdev.disks)
    return healthy


def scrub_failed(pool: Pool) -> bool:
    """A finished scrub that repaired data but did not finish clean."""
    return "scrub repaired" in pool.scan and "with 0 errors" not in pool.scan


# ── Formatting ───────────────────────────────────────────────────────────────


def format_pool(pool: Pool) -> str:
    return f"pool {pool.name} - {pool.state} {pool.counters}: {pool.errors}"


def format_vdev(vdev: Vdev) -> str:
    if vdev.counters is None:
        return f"vdev {vdev.name} - {vdev.state}"
    return f"vdev {vdev.name} - {vdev.state} {vdev.counters}"


def format_disk(disk: Disk) -> str:
    if disk.counters is None:
        return f"disk {disk.name} - {disk.state}: {disk.message}"
    return f"disk {disk.name} - {disk.state} {disk.counters}: {disk.message}"


# ── Evaluation ───────────────────────────────────────────────────────────────


def evaluate(pools: list[Pool]) -> HealthReport:
    """Decide overall health and collect diagnostics for every fault."""
    diagnostics: list[str] = []

    for pool in pools:
        if not pool_healthy(pool):
            diagnostics.append(format_pool(pool))
            for vdev in pool.groups:
                if not vdev_healthy(vdev):
                    diagnostics.append(format_vdev(vdev))
                for disk in vdev.disks:
                    if not disk_healthy(disk, pool.groups[disk.group_index].kind):
                        diagnostics.append(format_disk(disk))

        if scrub_failed(pool):
            diagnostics.append(f"scrub of {pool.name} encountered errors: {pool.scan}")

    if diagnostics:
        logger.info("Pool health check found %d problem(s)", len(diagnostics))
    return HealthReport(healthy=not diagnostics, diagnostics=diagnostics)
