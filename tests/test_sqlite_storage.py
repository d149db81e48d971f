from __future__ import annotations

from datetime import datetime, timezone

import pytest

from adapters.sqlite_storage import SQLiteStorage
from core.errors import ConfigUnavailable
from core.models import NotificationRecord


def _storage(tmp_path) -> SQLiteStorage:
    storage = SQLiteStorage(str(tmp_path / "goldwatch.db"))
    storage.init_db()
    return storage


def _record(gold_id: int, recipient: str) -> NotificationRecord:
    return NotificationRecord(
        gold_id=gold_id,
        recipient=recipient,
        sent_at=datetime(2024, 7, 15, 2, 5, tzinfo=timezone.utc),
        amount=1850000,
        display_date="15-JUL-2024 09:05",
    )


def test_latest_config_raises_when_table_is_empty(tmp_path) -> None:
    storage = _storage(tmp_path)
    with pytest.raises(ConfigUnavailable):
        storage.latest_config()


def test_latest_config_returns_newest_row(tmp_path) -> None:
    storage = _storage(tmp_path)
    storage.insert_config(2000000, "07:00")
    storage.insert_config(1900000, "08:00, 20:00")

    config = storage.latest_config()

    assert config.threshold == 1900000
    assert config.trigger_times == ("08:00", "20:00")
    assert config.updated_at is not None


def test_notifications_are_unique_per_gold_id_and_recipient(tmp_path) -> None:
    storage = _storage(tmp_path)
    storage.save_notification(_record(11, "@alice"))
    storage.save_notification(_record(11, "@alice"))
    storage.save_notification(_record(11, "@bob"))
    storage.save_notification(_record(12, "@alice"))

    assert storage.sent_recipients(11) == {"@alice", "@bob"}
    assert storage.sent_recipients(12) == {"@alice"}
    assert storage.sent_recipients(99) == set()
