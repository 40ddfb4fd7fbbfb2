"""Telegram Bot API notification sink."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

import requests

from .errors import NotificationDeliveryError
from .http_client import HttpClient

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org"
PARSE_MODE_MARKDOWN = "Markdown"


@dataclass
class DeliveryResult:
    delivered: list[int] = field(default_factory=list)
    failed: list[NotificationDeliveryError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class TelegramNotifier:
    """Send one text to every allowed chat id.

    Each recipient is attempted independently; a failure is logged and
    recorded in the returned :class:`DeliveryResult` but never raised.
    """

    def __init__(
        self,
        bot_token: str,
        recipients: Sequence[int],
        timeout: float = 10.0,
        api_base: str = TELEGRAM_API_BASE,
        client: Optional[HttpClient] = None,
    ):
        self.recipients = list(recipients)
        self.client = client or HttpClient(
            base_url=f"{api_base.rstrip('/')}/bot{bot_token}",
            timeout=timeout,
        )

    def send_to(self, chat_id: int, text: str, parse_mode: str = PARSE_MODE_MARKDOWN) -> None:
        """Deliver ``text`` to a single chat.

        Raises:
            NotificationDeliveryError: transport failure or ``ok: false`` reply.
        """
        payload = {
            "chat_id": chat_id,
            "text": text,
            "parse_mode": parse_mode,
            "disable_web_page_preview": True,
        }
        try:
            response = self.client.post("sendMessage", json=payload)
        except requests.RequestException as exc:
            raise NotificationDeliveryError(chat_id, str(exc)) from exc

        if response.status_code != 200:
            raise NotificationDeliveryError(
                chat_id, f"HTTP {response.status_code}: {response.text[:200]}"
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise NotificationDeliveryError(chat_id, "non-JSON reply") from exc
        if not body.get("ok", False):
            raise NotificationDeliveryError(chat_id, str(body.get("description", "ok=false")))

    def send(self, text: str, parse_mode: str = PARSE_MODE_MARKDOWN) -> DeliveryResult:
        result = DeliveryResult()
        for chat_id in self.recipients:
            try:
                self.send_to(chat_id, text, parse_mode=parse_mode)
            except NotificationDeliveryError as exc:
                logger.error(f"Failed to send Telegram message: {exc}")
                result.failed.append(exc)
            else:
                result.delivered.append(chat_id)
        if result.delivered:
            logger.info(f"Telegram report delivered to {len(result.delivered)} recipient(s)")
        return result
