"""Free space per pool, read from the AVAIL column of ``zfs list``."""

from __future__ import annotations

import re


class MissingPoolError(LookupError):
    """Raised when a configured pool does not appear in ``zfs list``."""


def disk_usage(zfs_list: str, pools: list[str]) -> dict[str, str]:
    """Map each pool name to its available space, e.g. ``{"tank": "16.5G"}``."""
    usage: dict[str, str] = {}
    for pool in pools:
        m = re.search(rf"^{re.escape(pool)}\s+\S+\s+(\S+)\s+", zfs_list, re.MULTILINE)
        if not m:
            raise MissingPoolError(f"pool {pool} not found in zfs list output")
        usage[pool] = m[1]
    return usage


def format_usage(usage: dict[str, str]) -> str:
    return ", ".join(f"{pool}: {free}" for pool, free in usage.items())
