"""Mapping of raw config-table rows into core ScheduleConfig values."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from core.models import ScheduleConfig
from core.schedule import split_trigger_times

LOGGER = logging.getLogger(__name__)


def parse_threshold(raw: Any) -> Optional[int]:
    """Return the threshold as int, or None when missing or not numeric."""

    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = Decimal(str(raw).strip())
    except InvalidOperation:
        LOGGER.warning("Ignoring non-numeric threshold %r", raw)
        return None
    # Numeric and float columns come back as "1900000.0"; only whole amounts count.
    if not value.is_finite() or value != value.to_integral_value():
        LOGGER.warning("Ignoring non-integral threshold %r", raw)
        return None
    return int(value)


def _parse_updated_at(raw: Any) -> Optional[datetime]:
    if isinstance(raw, datetime):
        return raw
    if not raw:
        return None
    try:
        return datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    except ValueError:
        return None


def config_from_row(row: Mapping[str, Any]) -> ScheduleConfig:
    """Build a ScheduleConfig from a ``threshold``/``cron_times``/``updated_at`` row."""

    return ScheduleConfig(
        threshold=parse_threshold(row.get("threshold")),
        trigger_times=split_trigger_times(row.get("cron_times") or ""),
        updated_at=_parse_updated_at(row.get("updated_at")),
    )
