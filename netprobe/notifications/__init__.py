"""Proactive notifications — Slack and Telegram webhooks.

Fires only on health transitions a HealthEvent marks as notifying:
- first failure (good → bad)
- recovery (bad → good)

Continuing failures are dropped here; they only ever reach the log.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any

import httpx

from netprobe.config import settings
from netprobe.health.state import EventKind, HealthEvent

logger = logging.getLogger(__name__)


class NotifyLevel(str, Enum):
    CRITICAL = "critical"
    RECOVERY = "recovery"


# Emoji/icon mapping
_EMOJI = {
    NotifyLevel.CRITICAL: "🔴",
    NotifyLevel.RECOVERY: "✅",
}


class NotificationManager:
    """Central dispatcher for Slack / Telegram notifications."""

    def __init__(
        self,
        slack_webhook: str = "",
        telegram_token: str = "",
        telegram_chat_id: str = "",
        timeout: float = 10.0,
    ) -> None:
        self.slack_webhook = slack_webhook or settings.slack_webhook_url
        self.telegram_token = telegram_token or settings.telegram_bot_token
        self.telegram_chat_id = telegram_chat_id or settings.telegram_chat_id
        self.timeout = timeout
        self._enabled = bool(self.slack_webhook or (self.telegram_token and self.telegram_chat_id))

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    def status(self) -> dict[str, Any]:
        return {
            "enabled": self._enabled,
            "slack_configured": bool(self.slack_webhook),
            "telegram_configured": bool(self.telegram_token and self.telegram_chat_id),
        }

    async def handle_event(self, event: HealthEvent) -> None:
        """Scheduler callback: deliver a health event if it is a transition."""
        if not event.notify:
            logger.debug("Suppressed notification for %s (%s)", event.probe_name, event.kind.value)
            return

        if event.kind is EventKind.FAILED:
            level = NotifyLevel.CRITICAL
            title = "Probe failed"
            detail = f"Error: {event.error}"
        else:
            level = NotifyLevel.RECOVERY
            title = "Probe recovered"
            detail = f"Recovered from: {event.error}"

        text = (
            f"{_EMOJI[level]} *{title}*\n"
            f"Probe: `{event.probe_name}`\n"
            f"{detail}\n"
            f"At: {event.timestamp}\n"
        )
        await self._send(text)

    # -- Low-level dispatch -------------------------------------------------

    async def _send(self, text: str) -> None:
        """Dispatch to all configured channels concurrently."""
        if not self._enabled:
            return
        tasks = []
        if self.slack_webhook:
            tasks.append(self._send_slack(text))
        if self.telegram_token and self.telegram_chat_id:
            tasks.append(self._send_telegram(text))
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _send_slack(self, text: str) -> None:
        """POST to Slack incoming webhook."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(
                    self.slack_webhook,
                    json={"text": text, "mrkdwn": True},
                )
                if resp.status_code != 200:
                    logger.warning("Slack webhook returned %d: %s", resp.status_code, resp.text[:200])
        except httpx.HTTPError as exc:
            logger.warning("Slack notification failed: %s", exc)

    async def _send_telegram(self, text: str) -> None:
        """POST to Telegram Bot API."""
        url = f"https://api.telegram.org/bot{self.telegram_token}/sendMessage"
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(
                    url,
                    json={
                        "chat_id": self.telegram_chat_id,
                        "text": text,
                        "parse_mode": "Markdown",
                    },
                )
                if resp.status_code != 200:
                    logger.warning("Telegram API returned %d: %s", resp.status_code, resp.text[:200])
        except httpx.HTTPError as exc:
            logger.warning("Telegram notification failed: %s", exc)


# -- Singleton -----------------------------------------------------------------

_notifier: NotificationManager | None = None


def get_notifier() -> NotificationManager:
    """Return the process-level notification manager."""
    global _notifier
    if _notifier is None:
        _notifier = NotificationManager()
    return _notifier
