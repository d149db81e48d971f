"""Static configuration for goldwatch.

Non-secret settings (timezones, tables, dedup, notifications, logging) live
in a single JSON file for quick edits without touching Python. Secrets and
deployment values (recipients, credentials, port) come from the environment.
"""

import json
import os

from dotenv import load_dotenv

from core.recipients import parse_recipients

load_dotenv()

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_PATH = os.getenv("GOLDWATCH_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _resolve_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_ROOT, path)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Trigger times in the config store are local wall-clock times in TIMEZONE;
# the scheduler itself runs in SCHEDULER_TIMEZONE.
_schedule = _CONFIG.get("schedule", {})
TIMEZONE = _schedule.get("timezone", "Asia/Jakarta")
SCHEDULER_TIMEZONE = _schedule.get("scheduler_timezone", "UTC")
RESYNC_MINUTES = int(_schedule.get("resync_minutes", 30))

_price_source = _CONFIG.get("price_source", {})
PRICE_SOURCE_URL = _price_source.get("url", "https://api.treasury.id/api/v1/antigrvty/gold/stats/buy")
PRICE_SOURCE_TIMEOUT = float(_price_source.get("timeout_seconds", 15))

# Storage backend: "supabase" for the remote tables, "sqlite" for a local file.
_storage = _CONFIG.get("storage", {})
STORAGE_BACKEND = _storage.get("backend", "supabase")
CONFIG_TABLE = _storage.get("config_table", "gold_config")
NOTIFICATIONS_TABLE = _storage.get("notifications_table", "emasDB")
SQLITE_PATH = _resolve_path(_storage.get("sqlite_path", "goldwatch.db"))

# Dedup scope: "per_recipient" or "global" (see core.config.DedupConfig).
DEDUP_SCOPE = _CONFIG.get("dedup", {}).get("scope", "per_recipient")

# Notification method switches adapters without changing core logic.
_notifications = _CONFIG.get("notifications", {})
NOTIFICATION_METHOD = _notifications.get("notification_method", "telegram")

_channel = _CONFIG.get("channel", {})
RECONNECT_DELAY_SECONDS = float(_channel.get("reconnect_delay_seconds", 30))

_session = _CONFIG.get("session", {})
SESSION_BUCKET = _session.get("bucket", "tg-sessions")
SESSION_ARCHIVE_NAME = _session.get("archive_name", "session_default.zip")
# Pull the archived session at startup and push it after a fresh login.
SESSION_AUTO_SYNC = bool(_session.get("auto_sync", False))
SESSION_PATH = _resolve_path(os.getenv("SESSION_NAME", "goldwatch"))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})

# Environment-driven values.
RECIPIENTS = parse_recipients(os.getenv("GOLD_RECIPIENTS", ""))
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_KEY = os.getenv("SUPABASE_KEY", "")
PORT = int(os.getenv("PORT", "3000"))
