"""Tests for a full health-check run."""

from __future__ import annotations

from datetime import datetime
from urllib.parse import parse_qs

import httpx
import pytest

from heartbeat.commands import CommandError
from heartbeat.config import settings
from heartbeat.runner import FAILED_TITLE, HEARTBEAT_TITLE, run_heartbeat, should_send_heartbeat


def form(request: httpx.Request) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


def smartctl_key(disk: str) -> tuple[str, ...]:
    return (settings.smartctl_binary, "-l", "selftest", f"/dev/{disk}")


# 2025-10-18 is a Saturday
IN_WINDOW = datetime(2025, 10, 18, 8, 15)
OUT_OF_WINDOW = datetime(2025, 10, 16, 14, 0)

HEALTHY_MESSAGE = "Disk age: 4.83-4.83 years\nFree Space: boot-pool: 16.0G, primarySafe: 16.5G"


class TestHeartbeatWindow:
    @pytest.mark.parametrize("now, expected", [
        (datetime(2025, 10, 18, 8, 0), True),
        (datetime(2025, 10, 18, 8, 29), True),
        (datetime(2025, 10, 18, 8, 30), False),
        (datetime(2025, 10, 18, 9, 0), False),
        (datetime(2025, 10, 17, 8, 0), False),
    ])
    def test_window(self, now: datetime, expected: bool) -> None:
        assert should_send_heartbeat(now) is expected


class TestRunHeartbeat:
    def test_healthy_outside_window(self, healthy_outputs, make_executor, notifier, pushover_requests) -> None:
        result = run_heartbeat(make_executor(healthy_outputs), notifier, OUT_OF_WINDOW)
        assert result.healthy
        assert result.message == HEALTHY_MESSAGE
        assert not result.notified
        assert pushover_requests == []

    def test_healthy_in_window(self, healthy_outputs, make_executor, notifier, pushover_requests) -> None:
        result = run_heartbeat(make_executor(healthy_outputs), notifier, IN_WINDOW)
        assert result.notified
        (request,) = pushover_requests
        assert form(request)["title"] == HEARTBEAT_TITLE
        assert form(request)["message"] == HEALTHY_MESSAGE

    def test_pool_fault(self, data, healthy_outputs, make_executor, notifier, pushover_requests) -> None:
        healthy_outputs[(settings.zpool_binary, "status")] = data("zpool_disk_offline.txt")
        executor = make_executor(healthy_outputs)

        result = run_heartbeat(executor, notifier, OUT_OF_WINDOW)

        assert not result.healthy
        assert result.message == (
            "pool primarySafe - ONLINE (0|0|0): errors: No known data errors\n"
            "vdev raidz2-0 - ONLINE (0|0|0)\n"
            "disk e43d41b6-adcc-11e5-b06a-d43d7ef79ff0 - OFFLINE (0|0|0): "
        )
        assert result.notified
        assert form(pushover_requests[0])["title"] == FAILED_TITLE
        # later checks never ran
        assert executor.calls == [(settings.zpool_binary, "status")]

    def test_parse_error(self, healthy_outputs, make_executor, notifier) -> None:
        healthy_outputs[(settings.zpool_binary, "status")] = "no pools available\n"
        result = run_heartbeat(make_executor(healthy_outputs), notifier, OUT_OF_WINDOW)
        assert not result.healthy
        assert result.message.startswith("parse error (START)")

    def test_smart_breach_stops_querying(self, data, healthy_outputs, make_executor, notifier, pushover_requests) -> None:
        fourth = settings.smart_disks[3]
        healthy_outputs[smartctl_key(fourth)] = data("smart_failing.txt")
        executor = make_executor(healthy_outputs)

        result = run_heartbeat(executor, notifier, OUT_OF_WINDOW)

        assert result.message == f"smart error: disk {fourth}: foobarted without error"
        queried = [call[-1] for call in executor.calls if call[0] == settings.smartctl_binary]
        assert queried == [f"/dev/{d}" for d in settings.smart_disks[:4]]
        assert form(pushover_requests[0])["message"] == result.message

    def test_command_failure(self, healthy_outputs, make_executor, notifier) -> None:
        healthy_outputs[(settings.zfs_binary, "list")] = CommandError(
            settings.zfs_binary, "wrote the following to stderr: permission denied",
        )
        result = run_heartbeat(make_executor(healthy_outputs), notifier, OUT_OF_WINDOW)
        assert not result.healthy
        assert result.message == f"Command {settings.zfs_binary} failed: wrote the following to stderr: permission denied"

    def test_missing_usage_pool(self, healthy_outputs, make_executor, notifier) -> None:
        healthy_outputs[(settings.zfs_binary, "list")] = "NAME USED AVAIL REFER MOUNTPOINT\n"
        result = run_heartbeat(make_executor(healthy_outputs), notifier, OUT_OF_WINDOW)
        assert not result.healthy
        assert "pool boot-pool not found" in result.message

    def test_failure_throttled(self, data, healthy_outputs, make_executor, notifier, pushover_requests) -> None:
        healthy_outputs[(settings.zpool_binary, "status")] = data("zpool_spare_unavail.txt")
        executor = make_executor(healthy_outputs)

        first = run_heartbeat(executor, notifier, OUT_OF_WINDOW)
        second = run_heartbeat(executor, notifier, OUT_OF_WINDOW.replace(minute=5))

        assert first.notified
        assert not second.notified
        assert not second.healthy
        assert len(pushover_requests) == 1
