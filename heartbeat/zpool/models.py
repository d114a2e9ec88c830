"""Data model for parsed ``zpool status`` output.

Ownership is strictly Pool → Vdev → Disk. A disk refers back to the vdev
it belongs to by index into the owning pool's ``groups`` list.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

ONLINE = "ONLINE"
AVAIL = "AVAIL"
NO_KNOWN_DATA_ERRORS = "errors: No known data errors"


class VdevKind(str, Enum):
    # mirror-N / raidzN-N: state and counters on the vdev and every member
    STANDARD = "standard"
    # hot spares: members only carry a state (AVAIL, INUSE, UNAVAIL)
    SPARE = "spare"
    # bare top-level device, or a logs/cache/special section header
    NONE = "none"


@dataclass
class ErrorCounters:
    """READ / WRITE / CKSUM columns of a device row."""

    read: int = 0
    write: int = 0
    checksum: int = 0

    @property
    def clean(self) -> bool:
        return self.read == 0 and self.write == 0 and self.checksum == 0

    def __str__(self) -> str:
        return f"({self.read}|{self.write}|{self.checksum})"


@dataclass
class Disk:
    name: str
    state: str
    group_index: int
    counters: ErrorCounters | None = None  # absent for spares
    message: str = ""


@dataclass
class Vdev:
    """A redundancy group within a pool.

    Which fields are filled depends on ``kind``:

    - STANDARD: ``state`` and ``counters`` always; members carry counters.
    - SPARE: name only (``state`` empty, ``counters`` None); members carry
      a state and message but no counters.
    - NONE: a bare device has ``state`` and ``counters`` and no members;
      a logs/cache section header has neither and owns counted members.
    """

    name: str
    kind: VdevKind
    state: str = ""
    counters: ErrorCounters | None = None  # absent for spares and section headers
    disks: list[Disk] = field(default_factory=list)


@dataclass
class Pool:
    name: str
    state: str = ""
    status: str = ""
    scan: str = ""
    counters: ErrorCounters = field(default_factory=ErrorCounters)
    groups: list[Vdev] = field(default_factory=list)
    errors: str = ""
