"""Telegram notification adapter using the logged-in Telethon client.

Formats a human-readable Markdown message and sends it to one recipient.
"""

from __future__ import annotations

from telethon import errors

from adapters.notification_formatting import format_notification
from core.errors import DeliveryError
from core.models import PriceAlert
from core.recipients import to_entity


class TelegramNotifier:
    """Notifier adapter that sends messages from the user's own account."""

    def __init__(self, client) -> None:
        self._client = client

    async def send(self, recipient: str, alert: PriceAlert) -> None:
        """Send the formatted alert, raising DeliveryError on any failure."""

        message = format_notification(alert, mode="markdown")
        try:
            await self._client.send_message(to_entity(recipient), message, parse_mode="md")
        except errors.RPCError as exc:
            raise DeliveryError(f"Telegram rejected the message: {exc}", recipient=recipient) from exc
        except Exception as exc:
            # Telethon raises ValueError for unresolvable entities and
            # ConnectionError when the link drops mid-send.
            raise DeliveryError(f"Telegram send failed: {exc}", recipient=recipient) from exc
