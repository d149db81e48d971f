"""Supabase storage adapter.

Implements the core ConfigStorePort and NotificationStorePort on top of two
Supabase (PostgREST) tables. The notifications table is expected to carry a
unique constraint on (gold_id, sent_to).
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from supabase import Client, create_client

from adapters.config_rows import config_from_row
from core.errors import ConfigUnavailable, StoreError
from core.models import NotificationRecord, ScheduleConfig

LOGGER = logging.getLogger(__name__)


def get_supabase_client(url: str, key: str) -> Client:
    """Create a Supabase client, failing fast on missing credentials."""

    if not url or not key:
        raise RuntimeError("Missing SUPABASE_URL or SUPABASE_KEY in environment")
    return create_client(url, key)


class SupabaseStorage:
    """Remote table store used for config and for dedup/audit rows."""

    def __init__(
        self,
        client: Client,
        config_table: str = "gold_config",
        notifications_table: str = "emasDB",
    ) -> None:
        self._client = client
        self._config_table = config_table
        self._notifications_table = notifications_table

    def latest_config(self) -> ScheduleConfig:
        """Return the row with the newest updated_at."""

        try:
            response = (
                self._client.table(self._config_table)
                .select("threshold, cron_times, updated_at")
                .order("updated_at", desc=True)
                .limit(1)
                .execute()
            )
        except Exception as exc:
            raise ConfigUnavailable(f"Supabase config read failed: {exc}") from exc
        if not response.data:
            raise ConfigUnavailable(f"No config row in {self._config_table}")
        return config_from_row(response.data[0])

    def insert_config(self, threshold: int, cron_times: str) -> None:
        self._client.table(self._config_table).insert(
            {
                "threshold": str(threshold),
                "cron_times": cron_times,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            }
        ).execute()

    def sent_recipients(self, gold_id: int) -> set[str]:
        try:
            response = (
                self._client.table(self._notifications_table)
                .select("sent_to")
                .eq("gold_id", gold_id)
                .execute()
            )
        except Exception as exc:
            raise StoreError(f"Supabase dedup lookup failed: {exc}") from exc
        return {row["sent_to"] for row in response.data or [] if row.get("sent_to")}

    def save_notification(self, record: NotificationRecord) -> None:
        try:
            self._client.table(self._notifications_table).insert(
                {
                    "gold_id": record.gold_id,
                    "buying_rate": record.amount,
                    "sent_to": record.recipient,
                    "sent_at": record.sent_at.isoformat(),
                    "date": record.display_date,
                }
            ).execute()
        except Exception as exc:
            raise StoreError(f"Supabase audit write failed: {exc}") from exc
        LOGGER.debug("Recorded gold_id %s for %s", record.gold_id, record.recipient)
