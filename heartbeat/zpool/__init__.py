"""zpool status parsing, pool model and health evaluation."""

from .health import HealthFault, HealthReport, evaluate
from .models import Disk, ErrorCounters, Pool, Vdev, VdevKind
from .parser import ParseError, parse_pools
