"""Telegram client factory for goldwatch.

We explicitly manage the client's lifecycle (connect/authorize/disconnect)
so it is obvious when the session is created and when it ends. This avoids
implicit context-manager behavior for a long-running watcher.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from telethon import TelegramClient


def build_client(session_path: str) -> TelegramClient:
    """Create a Telethon client from environment variables.

    We read API_ID/API_HASH via python-dotenv to keep secrets out of the repo.
    ``session_path`` is where Telethon keeps its ``.session`` file, which the
    session archive commands push to and pull from object storage.
    """

    load_dotenv()

    api_id = os.getenv("API_ID")
    api_hash = os.getenv("API_HASH")

    # Fail fast on missing credentials to avoid an ambiguous login prompt.
    if not api_id or not api_hash:
        raise RuntimeError("Missing API_ID or API_HASH in environment")

    logging.getLogger(__name__).info("Initializing Telegram client (session %s)", session_path)

    return TelegramClient(session_path, int(api_id), api_hash)
