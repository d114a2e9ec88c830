from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "HEARTBEAT_",
        "extra": "ignore",
    }

    # Binaries (TrueNAS keeps zpool/smartctl in /sbin)
    zpool_binary: str = "/sbin/zpool"
    smartctl_binary: str = "/sbin/smartctl"
    zfs_binary: str = "zfs"
    command_timeout: int = 120  # seconds per command

    # Disks checked with `smartctl -l selftest /dev/<disk>`
    smart_disks: list[str] = ["sda", "sdb", "sdc", "sdd", "sde", "sdf"]
    # x% of self-tests on one disk must fail before the health check fails
    smart_failure_threshold: float = 0.05

    # Pools reported in the free-space line of the heartbeat message
    usage_pools: list[str] = ["boot-pool", "primarySafe"]

    # Pushover (notifications disabled when either is empty)
    pushover_token: str = ""
    pushover_user: str = ""

    # Notification throttle: at most one message per cooldown window
    notify_state_file: str = "/mnt/primarySafe/apps/heartbeat/heartbeat.json"
    notify_cooldown_hours: int = 23

    # Weekly "all good" heartbeat window (weekday: Monday=0, Sunday=6)
    heartbeat_weekday: int = 5
    heartbeat_hour: int = 8
    heartbeat_minute_max: int = 29

    # Logging
    log_level: str = "INFO"


settings = Settings()
