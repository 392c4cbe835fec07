"""Notifications for AI-driven gluten status changes."""

from __future__ import annotations

import html
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from .config import GlutenPeekConfig

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org"


@dataclass
class StatusChange:
    barcode: str
    product_name: str
    previous_label: str
    new_label: str
    explanation: str = ""

    def message(self) -> str:
        text = (
            f"Product '{self.product_name}' status updated to '{self.new_label}'"
            f" (was '{self.previous_label}')."
        )
        if self.explanation:
            text += f" Reason: {self.explanation}"
        return text


class Notifier(ABC):
    @abstractmethod
    async def notify(self, change: StatusChange) -> None:
        ...


class LogNotifier(Notifier):
    """Reports status changes through the logging system."""

    async def notify(self, change: StatusChange) -> None:
        logger.info("AI gluten check: %s", change.message())


class TelegramNotifier(Notifier):
    """Sends status changes to a Telegram chat through the Bot API."""

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        *,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not bot_token or not chat_id:
            raise ValueError(
                "Telegram notifications need bot_token and chat_id. "
                "Check the config file or the TELEGRAM_BOT_TOKEN environment variable."
            )
        self._bot_token = bot_token
        self._chat_id = chat_id
        self._timeout = timeout
        self._client = client

    async def notify(self, change: StatusChange) -> None:
        url = f"{TELEGRAM_API_BASE}/bot{self._bot_token}/sendMessage"
        payload = {
            "chat_id": self._chat_id,
            "text": "<b>AI Gluten Check</b>\n" + html.escape(change.message()),
            "parse_mode": "HTML",
        }

        if self._client is not None:
            resp = await self._client.post(url, json=payload, timeout=self._timeout)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, json=payload)

        if resp.status_code != 200:
            logger.error(
                "Telegram send failed for chat_id=%s: status=%s, response=%s",
                self._chat_id,
                resp.status_code,
                resp.text[:200],
            )


def create_notifier(config: GlutenPeekConfig) -> Notifier:
    backend_name = config.notifications.backend

    match backend_name:
        case "log":
            return LogNotifier()
        case "telegram":
            tg = config.notifications.telegram
            return TelegramNotifier(bot_token=tg.bot_token, chat_id=tg.chat_id)
        case _:
            raise ValueError(
                f"Unknown notification backend: {backend_name!r} (choose log or telegram)"
            )
