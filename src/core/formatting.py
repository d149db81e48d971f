"""Display date normalization for notification records."""

from __future__ import annotations

import logging
from datetime import datetime

LOGGER = logging.getLogger(__name__)

MONTHS = ("JAN", "FEB", "MAR", "APR", "MAY", "JUN", "JUL", "AUG", "SEP", "OCT", "NOV", "DEC")


def _parse_day_month(source_date: str) -> tuple[int, int]:
    # Source dates look like "15 Jul" (no year); full month names also work.
    parts = source_date.split()
    if len(parts) < 2:
        raise ValueError(f"Unrecognized source date {source_date!r}")
    day = int(parts[0])
    month = MONTHS.index(parts[1][:3].upper()) + 1
    return day, month


def format_display_date(source_date: str, now: datetime) -> str:
    """Return ``DD-MMM-YYYY HH:mm`` from the source date and the local ``now``.

    The source omits the year, so the current calendar year is used, and the
    time of day is the current local time.
    """

    try:
        day, month = _parse_day_month(source_date)
        display = now.replace(month=month, day=day)
    except ValueError:
        LOGGER.warning("Could not parse source date %r, using today's date", source_date)
        display = now

    return f"{display.day:02d}-{MONTHS[display.month - 1]}-{display.year} {display.hour:02d}:{display.minute:02d}"
