"""Core notification pipeline.

This module is integration-agnostic. It only relies on ports for the price
source, storage and notifications, enabling other adapters without changes
here. One run enforces a strict order:

1) channel ready and recipients configured
2) read threshold
3) fetch prices and pick the latest record
4) threshold check
5) dedup check
6) send to each pending recipient and record every successful send

Store ports are synchronous; their calls run in worker threads so a slow
store stalls only this run, not the event loop.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, List
from zoneinfo import ZoneInfo

from core.channel import ChannelLifecycle
from core.config import DedupConfig
from core.errors import ConfigUnavailable, DeliveryError, SourceDataInvalid, SourceFetchError, StoreError
from core.formatting import format_display_date
from core.models import NotificationRecord, PriceAlert, RunOutcome, RunReport, latest_record
from core.ports import ConfigStorePort, NotificationStorePort, NotifierPort, PriceSourcePort

LOGGER = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class NotificationPipeline:
    """Orchestrates fetch, threshold check, dedup, fan-out and audit."""

    def __init__(
        self,
        price_source: PriceSourcePort,
        config_store: ConfigStorePort,
        notification_store: NotificationStorePort,
        notifier: NotifierPort,
        lifecycle: ChannelLifecycle,
        recipients: Iterable[str],
        dedup_config: DedupConfig,
        local_timezone: ZoneInfo,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._price_source = price_source
        self._config_store = config_store
        self._store = notification_store
        self._notifier = notifier
        self._lifecycle = lifecycle
        self._recipients = list(recipients)
        self._dedup = dedup_config
        self._local_tz = local_timezone
        self._clock = clock

    async def run_once(self) -> RunReport:
        """Run the pipeline for one trigger fire. Never raises domain errors."""

        if not self._lifecycle.is_ready:
            LOGGER.warning("Channel is %s, skipping run", self._lifecycle.state.value)
            return RunReport(RunOutcome.CHANNEL_NOT_READY)
        if not self._recipients:
            LOGGER.error("No recipients configured, skipping run")
            return RunReport(RunOutcome.NO_RECIPIENTS)

        try:
            threshold = await self._read_threshold()
        except ConfigUnavailable as exc:
            LOGGER.error("Threshold unavailable, aborting run: %s", exc)
            return RunReport(RunOutcome.CONFIG_UNAVAILABLE, detail=str(exc))

        try:
            latest = latest_record(await self._price_source.fetch())
        except (SourceFetchError, SourceDataInvalid) as exc:
            LOGGER.error("Price fetch failed, aborting run: %s", exc)
            return RunReport(RunOutcome.SOURCE_FAILED, threshold=threshold, detail=str(exc))

        LOGGER.info("Latest record id=%s buying_rate=%s date=%s", latest.id, latest.buying_rate, latest.date)
        report = RunReport(RunOutcome.ABOVE_THRESHOLD, latest=latest, threshold=threshold)

        # Common path: the price is not below the threshold, nothing to do.
        if latest.buying_rate >= threshold:
            LOGGER.info("buying_rate %s >= threshold %s, not sending", latest.buying_rate, threshold)
            return report

        try:
            pending = await self._pending_recipients(latest.id)
        except StoreError as exc:
            LOGGER.error("Dedup check failed for gold_id %s, aborting run: %s", latest.id, exc)
            report.outcome = RunOutcome.DEDUP_CHECK_FAILED
            report.detail = str(exc)
            return report

        if not pending:
            LOGGER.info("gold_id %s was already sent, skipping", latest.id)
            report.outcome = RunOutcome.ALREADY_SENT
            return report

        local_now = self._clock().astimezone(self._local_tz)
        alert = PriceAlert(
            record=latest,
            threshold=threshold,
            display_date=format_display_date(latest.date, local_now),
        )
        report.outcome = RunOutcome.SENT
        for recipient in pending:
            await self._deliver(recipient, alert, report)

        LOGGER.info(
            "Run for gold_id %s done: sent=%s failed=%s audit_failures=%s",
            latest.id,
            len(report.sent),
            len(report.failed),
            len(report.audit_failures),
        )
        return report

    async def _read_threshold(self) -> int:
        config = await asyncio.to_thread(self._config_store.latest_config)
        if config.threshold is None:
            raise ConfigUnavailable("Config row has no threshold")
        return config.threshold

    async def _pending_recipients(self, gold_id: int) -> List[str]:
        already_sent = await asyncio.to_thread(self._store.sent_recipients, gold_id)
        if self._dedup.scope == "global":
            return [] if already_sent else list(self._recipients)
        return [recipient for recipient in self._recipients if recipient not in already_sent]

    async def _deliver(self, recipient: str, alert: PriceAlert, report: RunReport) -> None:
        # Each recipient is independent: a failed send never blocks the
        # others and never creates an audit row.
        try:
            await self._notifier.send(recipient, alert)
        except DeliveryError as exc:
            LOGGER.error("Send of gold_id %s to %s failed: %s", alert.record.id, recipient, exc)
            report.failed[recipient] = str(exc)
            return

        report.sent.append(recipient)
        LOGGER.info("Sent gold_id %s to %s (threshold %s)", alert.record.id, recipient, alert.threshold)

        record = NotificationRecord(
            gold_id=alert.record.id,
            recipient=recipient,
            sent_at=self._clock(),
            amount=alert.record.buying_rate,
            display_date=alert.display_date,
        )
        try:
            await asyncio.to_thread(self._store.save_notification, record)
        except StoreError as exc:
            # The message is already out; the send is not retracted.
            LOGGER.error("Audit write for gold_id %s to %s failed: %s", alert.record.id, recipient, exc)
            report.audit_failures.append(recipient)
