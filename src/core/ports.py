"""Ports (interfaces) used by the core pipeline and reconciler.

Ports define the minimal contracts for the price source, storage,
notification and scheduler adapters so that the core can be reused with
different backends.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, List, Protocol

from core.models import NotificationRecord, PriceAlert, PriceRecord, ScheduleConfig


class PriceSourcePort(Protocol):
    """Read access to the external gold price feed."""

    async def fetch(self) -> List[PriceRecord]:
        ...


class ConfigStorePort(Protocol):
    """Read access to the newest schedule/threshold config row."""

    def latest_config(self) -> ScheduleConfig:
        ...


class NotificationStorePort(Protocol):
    """Dedup lookups and audit writes for sent notifications."""

    def sent_recipients(self, gold_id: int) -> set[str]:
        ...

    def save_notification(self, record: NotificationRecord) -> None:
        ...


class NotifierPort(Protocol):
    """Notification operations required by the core pipeline."""

    async def send(self, recipient: str, alert: PriceAlert) -> None:
        ...


class TriggerSchedulerPort(Protocol):
    """Registers daily jobs in the scheduler's own timezone."""

    def add_daily(self, hour: int, minute: int, callback: Callable[[], Awaitable[None]], name: str) -> Any:
        ...

    def cancel(self, handle: Any) -> None:
        ...
