"""Line-oriented state machine for ``zpool status`` text.

``zpool status`` is meant for humans: the layout of a device row depends on
the kind of vdev it sits under, on whether the pool has hot spares, on how
the device is named (gptid UUID, nvme name, plain name or a bare GUID for a
vanished disk) and on an optional trailing message. Each line is therefore
judged against the state the machine is in.

``transition`` handles exactly one line and says what happened:

- RECORD: a new pool began (returned in ``Transition.pool``)
- NO_RECORD: the line was consumed
- REDISPATCH: the same line must be fed again in ``next_state``

``parse_pools`` is the loop that feeds lines through ``transition``.

Typical input::

      pool: primarySafe
     state: ONLINE
      scan: scrub repaired 0B in 05:12:41 with 0 errors on Sun Oct 12 05:12:43 2025
    config:

            NAME                                            STATE     READ WRITE CKSUM
            primarySafe                                     ONLINE       0     0     0
              raidz2-0                                      ONLINE       0     0     0
                e43d41b6-adcc-11e5-b06a-d43d7ef79ff0        ONLINE       0     0     0
                ...
            spares
              f9aeb0c4-a208-4118-a5e3-0d01bfb36743          AVAIL

    errors: No known data errors
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum

from .models import Disk, ErrorCounters, Pool, Vdev, VdevKind

logger = logging.getLogger(__name__)


class ParseState(Enum):
    START = "start"
    STATUS = "status"
    SCAN = "scan"
    CONFIG = "config"
    POOL_HEADER = "pool_header"
    GROUP = "group"
    DISK = "disk"
    ERRORS = "errors"


class Outcome(str, Enum):
    RECORD = "record"
    NO_RECORD = "no_record"
    REDISPATCH = "redispatch"


@dataclass
class Transition:
    outcome: Outcome
    next_state: ParseState
    pool: Pool | None = None


class ParseError(ValueError):
    """Raised when a line does not fit the grammar of the current state."""

    def __init__(self, state: ParseState, line: str, reason: str) -> None:
        self.state = state
        self.line = line
        self.reason = reason
        super().__init__(f"parse error ({state.name}) {reason}: '{line}'")


# ── Line patterns ────────────────────────────────────────────────────────────

_POOL = re.compile(r"^\s*pool:\s+(\S+)\s*$")
_STATE = re.compile(r"^state:\s+(\S+)")
_SCAN = re.compile(r"^scan:\s*(.*)$")
_TABLE_HEADER = re.compile(r"^\s*NAME\s+STATE\s+READ\s+WRITE\s+CKSUM\s*$")

# name STATE read write cksum [message]
_COUNTED_ROW = re.compile(
    r"^\s*(?P<name>\S+)\s+(?P<state>\S+)"
    r"\s+(?P<read>\d+)\s+(?P<write>\d+)\s+(?P<checksum>\d+)"
    r"(?:\s+(?P<message>.*?))?\s*$"
)
# name STATE [message]
_SPARE_ROW = re.compile(r"^\s*(?P<name>\S+)\s+(?P<state>\S+)(?:\s+(?P<message>.*?))?\s*$")

# Group headers look like plain disk rows, so plain names must not start like one
_NOT_GROUP = r"(?!mirror-|raidz|spares\b)"
_UUID = r"\w{8}-\w{4}-\w{4}-\w{4}-\w{12}\s+"
_NVME = r"nvme\w+"
_PLAIN = _NOT_GROUP + r"\S+\s+[A-Z]+(?:\s+\d+){3}(?:\s+\S.*)?\s*$"

_DISK_ROW = re.compile(rf"^\s+(?:{_UUID}|{_NVME}|{_PLAIN})")
_SPARE_DISK_ROW = re.compile(r"^\s+" + _NOT_GROUP + r"\S+\s+[A-Z]+(?:\s+\S.*)?\s*$")


def _counters(match: re.Match[str]) -> ErrorCounters:
    return ErrorCounters(
        read=int(match["read"]),
        write=int(match["write"]),
        checksum=int(match["checksum"]),
    )


def is_disk_row(line: str, kind: VdevKind) -> bool:
    """Whether ``line`` looks like a member device of a vdev of ``kind``."""
    if _DISK_ROW.match(line):
        return True
    return kind is VdevKind.SPARE and bool(_SPARE_DISK_ROW.match(line))


# ── State handlers ───────────────────────────────────────────────────────────


def _start(line: str) -> Transition:
    if not line.strip():
        return Transition(Outcome.NO_RECORD, ParseState.START)
    m = _POOL.match(line)
    if not m:
        raise ParseError(ParseState.START, line, "expected 'pool: <name>'")
    return Transition(Outcome.RECORD, ParseState.STATUS, Pool(name=m[1]))


def _status(line: str, pool: Pool) -> Transition:
    stripped = line.strip()

    if stripped.startswith("scan:") or stripped == "config:":
        return Transition(Outcome.REDISPATCH, ParseState.SCAN)
    if stripped.startswith("action:"):
        # advisory text only
        return Transition(Outcome.NO_RECORD, ParseState.STATUS)

    if stripped.startswith("state:"):
        m = _STATE.match(stripped)
        if not m:
            raise ParseError(ParseState.STATUS, line, "expected 'state: <state>'")
        pool.state = m[1]
    elif stripped:
        # "status:" opens the text, indented lines continue it
        pool.status = f"{pool.status} {stripped}" if pool.status else stripped

    return Transition(Outcome.NO_RECORD, ParseState.STATUS)


def _scan(line: str, pool: Pool) -> Transition:
    stripped = line.strip()

    if _TABLE_HEADER.match(line):
        return Transition(Outcome.NO_RECORD, ParseState.POOL_HEADER)
    if stripped == "config:":
        return Transition(Outcome.NO_RECORD, ParseState.CONFIG)

    m = _SCAN.match(stripped)
    if m:
        pool.scan = m[1].strip()
    elif stripped:
        # progress lines of a running scrub/resilver
        pool.scan = f"{pool.scan} {stripped}" if pool.scan else stripped

    return Transition(Outcome.NO_RECORD, ParseState.SCAN)


def _config(line: str, pool: Pool) -> Transition:
    # only blank lines may sit between "config:" and the device table
    if _TABLE_HEADER.match(line):
        return Transition(Outcome.NO_RECORD, ParseState.POOL_HEADER)
    if line.strip():
        raise ParseError(ParseState.CONFIG, line, "expected device table header")
    return Transition(Outcome.NO_RECORD, ParseState.CONFIG)


def _pool_header(line: str, pool: Pool) -> Transition:
    m = _COUNTED_ROW.match(line)
    if not m:
        raise ParseError(ParseState.POOL_HEADER, line, "expected '<name> <state> <read> <write> <cksum>'")
    if m["name"] != pool.name:
        raise ParseError(
            ParseState.POOL_HEADER, line,
            f"expected pool name {m['name']} to match name {pool.name}",
        )
    if m["state"] != pool.state:
        raise ParseError(
            ParseState.POOL_HEADER, line,
            f"expected pool state {m['state']} to match state {pool.state}",
        )

    pool.counters = _counters(m)
    return Transition(Outcome.NO_RECORD, ParseState.GROUP)


def _group(line: str, pool: Pool) -> Transition:
    if "mirror-" in line or "raidz" in line:
        m = _COUNTED_ROW.match(line)
        if not m:
            raise ParseError(ParseState.GROUP, line, "expected '<vdev> <state> <read> <write> <cksum>'")
        vdev = Vdev(name=m["name"], kind=VdevKind.STANDARD, state=m["state"], counters=_counters(m))
    elif "spares" in line:
        vdev = Vdev(name=line.split()[0], kind=VdevKind.SPARE)
    else:
        words = line.split()
        m = _COUNTED_ROW.match(line)
        if m:
            # device attached straight to the pool (single-disk / striped pools)
            vdev = Vdev(name=m["name"], kind=VdevKind.NONE, state=m["state"], counters=_counters(m))
        elif len(words) == 1:
            # logs / cache / special / dedup section
            vdev = Vdev(name=words[0], kind=VdevKind.NONE)
        else:
            raise ParseError(ParseState.GROUP, line, "unrecognised vdev")

    pool.groups.append(vdev)
    return Transition(Outcome.NO_RECORD, ParseState.DISK)


def _disk(line: str, pool: Pool) -> Transition:
    if not line.strip():
        return Transition(Outcome.NO_RECORD, ParseState.ERRORS)

    group_index = len(pool.groups) - 1
    vdev = pool.groups[group_index]

    if not is_disk_row(line, vdev.kind):
        # not a member of the current vdev, so a new vdev begins here
        return Transition(Outcome.REDISPATCH, ParseState.GROUP)

    if vdev.kind is VdevKind.SPARE:
        m = _SPARE_ROW.match(line)
        if not m:
            raise ParseError(ParseState.DISK, line, "expected '<disk> <state>'")
        disk = Disk(name=m["name"], state=m["state"], group_index=group_index)
    else:
        m = _COUNTED_ROW.match(line)
        if not m:
            raise ParseError(ParseState.DISK, line, "expected '<disk> <state> <read> <write> <cksum>'")
        disk = Disk(name=m["name"], state=m["state"], group_index=group_index, counters=_counters(m))

    disk.message = m["message"] or ""
    vdev.disks.append(disk)
    return Transition(Outcome.NO_RECORD, ParseState.DISK)


def _errors(line: str, pool: Pool) -> Transition:
    stripped = line.strip()
    if not stripped:
        logger.debug("Parsed pool %s (%s): %d vdevs", pool.name, pool.state, len(pool.groups))
        return Transition(Outcome.NO_RECORD, ParseState.START)

    pool.errors = f"{pool.errors}\n{stripped}" if pool.errors else stripped
    return Transition(Outcome.NO_RECORD, ParseState.ERRORS)


_HANDLERS = {
    ParseState.STATUS: _status,
    ParseState.SCAN: _scan,
    ParseState.CONFIG: _config,
    ParseState.POOL_HEADER: _pool_header,
    ParseState.GROUP: _group,
    ParseState.DISK: _disk,
    ParseState.ERRORS: _errors,
}


# ── Public API ───────────────────────────────────────────────────────────────


def transition(state: ParseState, line: str, pool: Pool | None) -> Transition:
    """Apply one line to the machine.

    ``pool`` is the pool under construction and is updated in place; it is
    only allowed to be None in the START state.
    """
    if state is ParseState.START:
        return _start(line)
    if pool is None:
        raise ParseError(state, line, "no pool under construction")
    return _HANDLERS[state](line, pool)


def parse_pools(text: str) -> list[Pool]:
    """Parse the full output of ``zpool status`` into pools, in order."""
    pools: list[Pool] = []
    state = ParseState.START

    for line in text.splitlines():
        while True:
            step = transition(state, line, pools[-1] if pools else None)
            state = step.next_state
            if step.outcome is Outcome.RECORD and step.pool is not None:
                pools.append(step.pool)
            if step.outcome is not Outcome.REDISPATCH:
                break

    return pools
