"""ZFS heartbeat: pool status and SMART self-test health check."""

__version__ = "0.1.0"
