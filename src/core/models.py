"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional

from core.errors import SourceDataInvalid


@dataclass(frozen=True)
class PriceRecord:
    """One gold price row as published by the price source."""

    id: int
    buying_rate: int
    date: str


@dataclass(frozen=True)
class ScheduleConfig:
    """Newest config row: threshold plus local trigger times."""

    threshold: Optional[int]
    trigger_times: tuple[str, ...]
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class Trigger:
    """A daily point in local wall-clock time that fires the pipeline."""

    hour: int
    minute: int

    @property
    def label(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


@dataclass(frozen=True)
class NotificationRecord:
    """Persisted proof that one price record was sent to one recipient."""

    gold_id: int
    recipient: str
    sent_at: datetime
    amount: int
    display_date: str


@dataclass(frozen=True)
class PriceAlert:
    """Everything a notifier needs to render one alert."""

    record: PriceRecord
    threshold: int
    display_date: str


class RunOutcome(str, Enum):
    CHANNEL_NOT_READY = "channel_not_ready"
    NO_RECIPIENTS = "no_recipients"
    CONFIG_UNAVAILABLE = "config_unavailable"
    SOURCE_FAILED = "source_failed"
    ABOVE_THRESHOLD = "above_threshold"
    DEDUP_CHECK_FAILED = "dedup_check_failed"
    ALREADY_SENT = "already_sent"
    SENT = "sent"


@dataclass
class RunReport:
    """Result of a single pipeline run, including per-recipient failures."""

    outcome: RunOutcome
    latest: Optional[PriceRecord] = None
    threshold: Optional[int] = None
    sent: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    audit_failures: list[str] = field(default_factory=list)
    detail: str = ""


def latest_record(records: Iterable[PriceRecord]) -> PriceRecord:
    """Return the record with the highest id (not the last element)."""

    latest: Optional[PriceRecord] = None
    for record in records:
        if latest is None or record.id > latest.id:
            latest = record
    if latest is None:
        raise SourceDataInvalid("Price source returned no records")
    return latest
