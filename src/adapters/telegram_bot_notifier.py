"""Telegram Bot API notification adapter.

Uses the Bot API for delivery so alerts can be routed via a bot chat.
"""

from __future__ import annotations

from typing import Optional

import httpx

from adapters.notification_formatting import format_notification
from core.errors import DeliveryError
from core.models import PriceAlert


class TelegramBotNotifier:
    """Notifier adapter that sends messages via the Telegram Bot API."""

    def __init__(
        self,
        bot_token: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._bot_token = bot_token
        self._timeout = timeout
        self._transport = transport

    def _endpoint(self) -> str:
        # The Bot API endpoint is deterministic and derived from the token.
        return f"https://api.telegram.org/bot{self._bot_token}/sendMessage"

    async def send(self, recipient: str, alert: PriceAlert) -> None:
        """Send the formatted alert via the Bot API."""

        payload = {
            "chat_id": recipient,
            "text": format_notification(alert, mode="html"),
            "parse_mode": "HTML",
            "disable_web_page_preview": True,
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._endpoint(), json=payload)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            body = exc.response.text
            raise DeliveryError(f"Bot API error {exc.response.status_code}: {body}", recipient=recipient) from exc
        except httpx.HTTPError as exc:
            raise DeliveryError(f"Bot API request failed: {exc}", recipient=recipient) from exc
