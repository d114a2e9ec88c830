"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import httpx
import pytest

from heartbeat.commands import CommandError
from heartbeat.config import settings
from heartbeat.notifications import Notifier, NotifyThrottle

DATA_DIR = Path(__file__).parent / "data"


def read_data(name: str) -> str:
    return (DATA_DIR / name).read_text(encoding="utf-8")


class FakeExecutor:
    """Stands in for run_command: answers from canned output, records calls."""

    def __init__(self, outputs: dict[tuple[str, ...], str | Exception]) -> None:
        self.outputs = outputs
        self.calls: list[tuple[str, ...]] = []

    def __call__(self, cmd: str, *args: str) -> str:
        key = (cmd, *args)
        self.calls.append(key)
        if key not in self.outputs:
            raise CommandError(cmd, f"could not find command {' '.join(key)}")
        out = self.outputs[key]
        if isinstance(out, Exception):
            raise out
        return out


def smartctl_key(disk: str) -> tuple[str, ...]:
    return (settings.smartctl_binary, "-l", "selftest", f"/dev/{disk}")


@pytest.fixture
def data() -> Callable[[str], str]:
    return read_data


@pytest.fixture
def healthy_outputs() -> dict[tuple[str, ...], str | Exception]:
    """Command output of a system where every check passes."""
    outputs: dict[tuple[str, ...], str | Exception] = {
        (settings.zpool_binary, "status"): read_data("zpool_healthy.txt"),
        (settings.zfs_binary, "list"): read_data("zfs_list.txt"),
    }
    for disk in settings.smart_disks:
        outputs[smartctl_key(disk)] = read_data("smart_passing.txt")
    return outputs


@pytest.fixture
def pushover_requests() -> list[httpx.Request]:
    return []


@pytest.fixture
def notifier(tmp_path: Path, pushover_requests: list[httpx.Request]) -> Notifier:
    """A configured notifier that talks to a mock transport."""

    def handler(request: httpx.Request) -> httpx.Response:
        pushover_requests.append(request)
        return httpx.Response(200, json={"status": 1, "request": "abc"})

    return Notifier(
        token="app-token",
        user="user-key",
        throttle=NotifyThrottle(state_file=tmp_path / "heartbeat.json", cooldown_hours=23),
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture
def make_executor() -> type[FakeExecutor]:
    return FakeExecutor
