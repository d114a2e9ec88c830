"""Run an external command and hand back its stdout as text.

Every command the health check depends on (zpool, smartctl, zfs) goes
through ``run_command``. A missing binary, a timeout, a non-zero exit or
any output on stderr raises CommandError, which the runner reports as-is.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Callable

from heartbeat.config import settings

logger = logging.getLogger(__name__)

# Signature shared by run_command and the fakes used in tests
Executor = Callable[..., str]


class CommandError(Exception):
    """Raised when a command could not be run or reported a failure."""

    def __init__(self, cmd: str, detail: str, returncode: int | None = None) -> None:
        self.cmd = cmd
        self.detail = detail
        self.returncode = returncode
        super().__init__(f"Command {cmd} failed: {detail}")


def run_command(cmd: str, *args: str, timeout: int | None = None) -> str:
    """Run ``cmd`` with ``args`` and return captured stdout."""
    argv = [cmd, *args]
    timeout = timeout or settings.command_timeout
    logger.debug("Running command: %s", " ".join(argv))

    try:
        result = subprocess.run(
            argv,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        raise CommandError(cmd, f"timed out after {timeout}s")
    except OSError as e:
        raise CommandError(cmd, f"{type(e).__name__}: {e}")

    if result.stderr:
        raise CommandError(
            cmd,
            f"wrote the following to stderr: {result.stderr.strip()}",
            result.returncode,
        )
    if result.returncode != 0:
        raise CommandError(cmd, f"exited with status {result.returncode}", result.returncode)

    return result.stdout
