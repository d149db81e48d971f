"""Telegram channel supervisor.

Owns the Telethon client and is the single writer of the ChannelLifecycle:
connect, authorize, mark ready, wait for the disconnect, then reconnect.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from telethon import TelegramClient

from core.channel import ChannelLifecycle, ChannelState
from login import authorize

LOGGER = logging.getLogger(__name__)


class TelegramChannel:
    """Keeps one Telethon client connected and reports its state."""

    def __init__(
        self,
        client: TelegramClient,
        lifecycle: ChannelLifecycle,
        reconnect_delay: float = 30.0,
        on_authenticated: Optional[Callable[[], None]] = None,
    ) -> None:
        self._client = client
        self._lifecycle = lifecycle
        self._reconnect_delay = reconnect_delay
        self._on_authenticated = on_authenticated
        self._challenged = False

    @property
    def client(self) -> TelegramClient:
        return self._client

    def _awaiting_authentication(self) -> None:
        self._challenged = True
        self._lifecycle.transition(ChannelState.AWAITING_AUTHENTICATION)

    async def connect(self) -> None:
        """Connect and authorize once, ending in the READY state."""

        self._challenged = False
        await self._client.connect()
        await authorize(self._client, on_challenge=self._awaiting_authentication)
        self._lifecycle.transition(ChannelState.READY)
        if self._challenged and self._on_authenticated is not None:
            await self._store_new_session()

    async def _store_new_session(self) -> None:
        # A failed upload only costs the next deployment a login.
        try:
            await asyncio.to_thread(self._on_authenticated)
        except Exception:
            LOGGER.exception("Could not store the new session")

    async def run(self) -> None:
        """Supervise the connection until cancelled."""

        while True:
            try:
                await self.connect()
                LOGGER.info("Client connected. Waiting for scheduled checks...")
                await self._client.disconnected
                LOGGER.error("Telegram client disconnected")
            except asyncio.CancelledError:
                raise
            except Exception:
                LOGGER.exception("Telegram connection failed")

            if self._lifecycle.state in (ChannelState.READY, ChannelState.AWAITING_AUTHENTICATION):
                self._lifecycle.transition(ChannelState.DISCONNECTED)
            await asyncio.sleep(self._reconnect_delay)

    async def close(self) -> None:
        await self._client.disconnect()
