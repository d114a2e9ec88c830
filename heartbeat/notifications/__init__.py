"""Operator notifications via Pushover.

Fires on:
- any failed health check (pool fault, SMART threshold, command failure)
- the weekly "all good" heartbeat

Sends are throttled through a small JSON state file so that a check run
from cron every few minutes does not page the operator every time: once a
message went out, further messages are dropped for the cooldown period.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timedelta
from pathlib import Path

import httpx

from heartbeat.config import settings

logger = logging.getLogger(__name__)

PUSHOVER_API = "https://api.pushover.net/1/messages.json"


class NotifyThrottle:
    """Remembers when the last notification was sent."""

    def __init__(self, state_file: Path | None = None, cooldown_hours: int | None = None) -> None:
        self.state_file = state_file or Path(settings.notify_state_file)
        self.cooldown = timedelta(hours=cooldown_hours or settings.notify_cooldown_hours)

    def last_sent(self) -> datetime | None:
        try:
            data = json.loads(self.state_file.read_text(encoding="utf-8"))
            return datetime.fromisoformat(data["last_updated"])
        except FileNotFoundError:
            return None
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.info("Ignoring unreadable notification state %s: %s", self.state_file, e)
            return None

    def allow(self, now: datetime) -> bool:
        last = self.last_sent()
        return last is None or last + self.cooldown <= now

    def record(self, now: datetime) -> None:
        try:
            self.state_file.parent.mkdir(parents=True, exist_ok=True)
            self.state_file.write_text(
                json.dumps({"last_updated": now.isoformat()}), encoding="utf-8",
            )
        except OSError as e:
            logger.warning("Could not write notification state %s: %s", self.state_file, e)


class Notifier:
    """Sends titled messages to a Pushover user."""

    def __init__(
        self,
        token: str = "",
        user: str = "",
        throttle: NotifyThrottle | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.token = token or settings.pushover_token
        self.user = user or settings.pushover_user
        self.throttle = throttle or NotifyThrottle()
        self._transport = transport
        self._enabled = bool(self.token and self.user)

        if not self._enabled:
            logger.info("Pushover notifier disabled (no token/user)")

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def notify(self, title: str, message: str, now: datetime | None = None) -> bool:
        """Send unless disabled or throttled. Returns True if delivered."""
        if not self._enabled:
            logger.debug("Pushover: skipping send (not configured)")
            return False

        now = now or datetime.now()
        if not self.throttle.allow(now):
            logger.info("Notification '%s' suppressed (sent within the last %s)", title, self.throttle.cooldown)
            return False
        self.throttle.record(now)

        try:
            async with httpx.AsyncClient(timeout=10, transport=self._transport) as client:
                resp = await client.post(
                    PUSHOVER_API,
                    data={
                        "token": self.token,
                        "user": self.user,
                        "title": title,
                        "message": message,
                    },
                )
            if resp.status_code != 200:
                logger.warning("Pushover returned %d: %s", resp.status_code, resp.text[:200])
                return False
            return True
        except httpx.HTTPError as exc:
            logger.warning("Pushover notification failed: %s", exc)
            return False

    def notify_sync(self, title: str, message: str, now: datetime | None = None) -> bool:
        """Synchronous wrapper for the one-shot health check run."""
        return asyncio.run(self.notify(title, message, now))
