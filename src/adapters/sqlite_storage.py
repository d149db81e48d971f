"""SQLite storage adapter.

Implements the core ConfigStorePort and NotificationStorePort using a simple
local SQLite database, for offline runs and tests.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone

from adapters.config_rows import config_from_row
from core.errors import ConfigUnavailable, StoreError
from core.models import NotificationRecord, ScheduleConfig

LOGGER = logging.getLogger(__name__)


class SQLiteStorage:
    """Thin SQLite wrapper that satisfies both storage ports."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - gold_config: append-only config rows; the newest updated_at wins
        - notifications: audit log of sent alerts, also the dedup source
        """

        with self._connect() as conn:
            # Fields:
            # - threshold: alert when buying_rate is below this amount
            # - cron_times: comma-separated local "HH:MM" entries
            # - updated_at: ISO timestamp used to pick the authoritative row
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS gold_config (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    threshold TEXT,
                    cron_times TEXT,
                    updated_at TIMESTAMP NOT NULL
                )
                """
            )
            # One row per (gold_id, sent_to); the unique constraint is what
            # makes per-recipient dedup hold even if a check races.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS notifications (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    gold_id INTEGER NOT NULL,
                    buying_rate INTEGER,
                    sent_to TEXT NOT NULL,
                    sent_at TIMESTAMP,
                    date TEXT,
                    UNIQUE (gold_id, sent_to)
                )
                """
            )

    def latest_config(self) -> ScheduleConfig:
        """Return the newest config row, raising ConfigUnavailable if none."""

        try:
            with self._connect() as conn:
                row = conn.execute(
                    """
                    SELECT threshold, cron_times, updated_at FROM gold_config
                    ORDER BY updated_at DESC, id DESC LIMIT 1
                    """
                ).fetchone()
        except sqlite3.Error as exc:
            raise ConfigUnavailable(f"SQLite config read failed: {exc}") from exc
        if row is None:
            raise ConfigUnavailable("No config row in gold_config")
        return config_from_row(dict(row))

    def insert_config(self, threshold: int, cron_times: str) -> None:
        """Append a new config row; it becomes the authoritative one."""

        with self._connect() as conn:
            conn.execute(
                "INSERT INTO gold_config (threshold, cron_times, updated_at) VALUES (?, ?, ?)",
                (str(threshold), cron_times, datetime.now(timezone.utc).isoformat()),
            )

    def sent_recipients(self, gold_id: int) -> set[str]:
        """Return every recipient that already has a record for gold_id."""

        try:
            with self._connect() as conn:
                rows = conn.execute(
                    "SELECT sent_to FROM notifications WHERE gold_id = ?",
                    (gold_id,),
                ).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"SQLite dedup lookup failed: {exc}") from exc
        return {row["sent_to"] for row in rows}

    def save_notification(self, record: NotificationRecord) -> None:
        """Insert the audit row; a duplicate (gold_id, sent_to) is ignored."""

        try:
            with self._connect() as conn:
                cur = conn.execute(
                    """
                    INSERT INTO notifications (gold_id, buying_rate, sent_to, sent_at, date)
                    VALUES (?, ?, ?, ?, ?)
                    ON CONFLICT(gold_id, sent_to) DO NOTHING
                    """,
                    (
                        record.gold_id,
                        record.amount,
                        record.recipient,
                        record.sent_at.isoformat(),
                        record.display_date,
                    ),
                )
        except sqlite3.Error as exc:
            raise StoreError(f"SQLite audit write failed: {exc}") from exc
        if cur.rowcount == 0:
            LOGGER.info("gold_id %s to %s was already recorded", record.gold_id, record.recipient)
