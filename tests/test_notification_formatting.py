from __future__ import annotations

from datetime import datetime

import pytest

from adapters.notification_formatting import format_notification, format_rupiah
from core.formatting import format_display_date
from core.models import PriceAlert, PriceRecord


def _alert(date: str = "15 Jul") -> PriceAlert:
    return PriceAlert(
        record=PriceRecord(id=11, buying_rate=1850000, date=date),
        threshold=1900000,
        display_date="15-JUL-2024 09:05",
    )


def test_display_date_uses_current_year_and_local_time() -> None:
    now = datetime(2024, 7, 15, 9, 5)
    assert format_display_date("15 Jul", now) == "15-JUL-2024 09:05"


def test_display_date_accepts_full_month_names() -> None:
    now = datetime(2025, 3, 1, 18, 40)
    assert format_display_date("2 December", now) == "02-DEC-2025 18:40"


def test_display_date_falls_back_to_today_for_bad_input() -> None:
    now = datetime(2023, 5, 6, 7, 8)
    assert format_display_date("yesterday", now) == "06-MAY-2023 07:08"
    # 29 Feb does not exist in 2023.
    assert format_display_date("29 Feb", now) == "06-MAY-2023 07:08"


def test_format_rupiah_groups_thousands() -> None:
    assert format_rupiah(1850000) == "Rp1.850.000"


def test_markdown_notification_contains_rate_and_date() -> None:
    body = format_notification(_alert(), mode="markdown")
    assert "Rp1.850.000" in body
    assert "Rp1.900.000" in body
    assert "15-JUL-2024 09:05" in body


def test_html_notification_escapes_source_date() -> None:
    body = format_notification(_alert(date="15 <Jul>"), mode="html")
    assert "15 &lt;Jul&gt;" in body
    assert "<b>Buying rate:</b> Rp1.850.000" in body


def test_unknown_mode_raises() -> None:
    with pytest.raises(ValueError):
        format_notification(_alert(), mode="plain")
