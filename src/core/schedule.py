"""Trigger time parsing and timezone conversion (core domain)."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Iterable, List
from zoneinfo import ZoneInfo

from core.errors import ScheduleParseError
from core.models import Trigger

LOGGER = logging.getLogger(__name__)


def split_trigger_times(raw: str) -> tuple[str, ...]:
    """Split a comma-separated ``cron_times`` value into trimmed entries."""

    return tuple(part.strip() for part in (raw or "").split(",") if part.strip())


def parse_trigger_time(entry: str) -> Trigger:
    """Parse one ``HH:MM`` entry, raising ScheduleParseError when invalid."""

    hour_text, sep, minute_text = entry.strip().partition(":")
    if not sep:
        raise ScheduleParseError(f"Missing ':' in trigger time {entry!r}", entry)
    try:
        hour = int(hour_text)
        minute = int(minute_text)
    except ValueError as exc:
        raise ScheduleParseError(f"Trigger time {entry!r} is not two integers", entry) from exc
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ScheduleParseError(f"Trigger time {entry!r} is out of range", entry)
    return Trigger(hour=hour, minute=minute)


def parse_trigger_times(entries: Iterable[str]) -> List[Trigger]:
    """Parse all entries, skipping malformed ones and collapsing duplicates.

    A bad entry never aborts the batch; it is logged and dropped so the
    remaining valid times are still scheduled.
    """

    triggers: List[Trigger] = []
    for entry in entries:
        try:
            trigger = parse_trigger_time(entry)
        except ScheduleParseError as exc:
            LOGGER.warning("Skipping trigger time: %s", exc)
            continue
        if trigger not in triggers:
            triggers.append(trigger)
    return triggers


def to_scheduler_time(
    trigger: Trigger,
    local_tz: ZoneInfo,
    scheduler_tz: ZoneInfo,
    on_date: date,
) -> tuple[int, int]:
    """Convert a local trigger to (hour, minute) in the scheduler timezone.

    The offset is taken for ``on_date``, so DST shifts are picked up by the
    next reconcile rather than by fixed arithmetic.
    """

    local_dt = datetime(on_date.year, on_date.month, on_date.day, trigger.hour, trigger.minute, tzinfo=local_tz)
    converted = local_dt.astimezone(scheduler_tz)
    return converted.hour, converted.minute


def matches_local_time(trigger: Trigger, now: datetime, local_tz: ZoneInfo) -> bool:
    """Return True when ``now`` reads the trigger's wall-clock minute locally."""

    local_now = now.astimezone(local_tz)
    return local_now.hour == trigger.hour and local_now.minute == trigger.minute
