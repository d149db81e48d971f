"""Schedule reconciler: config-store trigger times to scheduler jobs."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Protocol
from zoneinfo import ZoneInfo

from core.channel import ChannelLifecycle, ChannelState
from core.errors import ConfigUnavailable
from core.models import RunReport, Trigger
from core.ports import ConfigStorePort, TriggerSchedulerPort
from core.schedule import matches_local_time, parse_trigger_times, to_scheduler_time

LOGGER = logging.getLogger(__name__)


class Runnable(Protocol):
    async def run_once(self) -> RunReport:
        ...


@dataclass(frozen=True)
class ActiveTrigger:
    """A registered trigger and the scheduler handle needed to cancel it."""

    trigger: Trigger
    scheduler_hour: int
    scheduler_minute: int
    handle: Any


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ScheduleReconciler:
    """Rebuilds the whole trigger set from the newest config row.

    The active set is a tuple replaced in one assignment, never mutated in
    place.
    """

    def __init__(
        self,
        config_store: ConfigStorePort,
        scheduler: TriggerSchedulerPort,
        pipeline: Runnable,
        lifecycle: ChannelLifecycle,
        local_timezone: ZoneInfo,
        scheduler_timezone: ZoneInfo,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._config_store = config_store
        self._scheduler = scheduler
        self._pipeline = pipeline
        self._lifecycle = lifecycle
        self._local_tz = local_timezone
        self._scheduler_tz = scheduler_timezone
        self._clock = clock
        self._active: tuple[ActiveTrigger, ...] = ()
        self._pending: set[asyncio.Task] = set()

    @property
    def active_triggers(self) -> tuple[ActiveTrigger, ...]:
        return self._active

    async def reconcile(self) -> None:
        """Replace all triggers with the ones from the newest config row."""

        try:
            config = await asyncio.to_thread(self._config_store.latest_config)
        except ConfigUnavailable as exc:
            LOGGER.error("Config unavailable, keeping %s existing triggers: %s", len(self._active), exc)
            return

        triggers = parse_trigger_times(config.trigger_times)
        self._cancel_all()
        if not triggers:
            LOGGER.warning("No valid trigger times in config, no runs are scheduled")
            return

        today = self._clock().astimezone(self._local_tz).date()
        registered = []
        for trigger in triggers:
            hour, minute = to_scheduler_time(trigger, self._local_tz, self._scheduler_tz, today)
            try:
                handle = self._scheduler.add_daily(
                    hour,
                    minute,
                    self._make_callback(trigger),
                    name=f"gold-check {trigger.label} {self._local_tz.key}",
                )
            except Exception:
                # Every registered handle must end up in the active set, or
                # the next reconcile could never cancel it.
                LOGGER.exception("Could not schedule check at %s, skipping it", trigger.label)
                continue
            registered.append(ActiveTrigger(trigger, hour, minute, handle))
            LOGGER.info(
                "Scheduled check at %s %s (%02d:%02d %s)",
                trigger.label,
                self._local_tz.key,
                hour,
                minute,
                self._scheduler_tz.key,
            )
        self._active = tuple(registered)

    def reconcile_on_ready(self) -> None:
        """Reconcile each time the channel becomes ready.

        Must be called from inside the running event loop.
        """

        loop = asyncio.get_running_loop()

        def _on_state_change(_old: ChannelState, new: ChannelState) -> None:
            if new is ChannelState.READY:
                task = loop.create_task(self.reconcile())
                self._pending.add(task)
                task.add_done_callback(self._pending.discard)

        self._lifecycle.subscribe(_on_state_change)

    def _cancel_all(self) -> None:
        previous, self._active = self._active, ()
        for active in previous:
            self._scheduler.cancel(active.handle)

    def _make_callback(self, trigger: Trigger) -> Callable[[], Any]:
        async def _fire() -> None:
            await self.fire(trigger)

        return _fire

    async def fire(self, trigger: Trigger) -> Optional[RunReport]:
        """Run the pipeline if the local clock and the channel still agree."""

        now = self._clock()
        if not matches_local_time(trigger, now, self._local_tz):
            LOGGER.warning(
                "Trigger %s fired at local %s, skipping",
                trigger.label,
                now.astimezone(self._local_tz).strftime("%H:%M"),
            )
            return None
        if not self._lifecycle.is_ready:
            LOGGER.debug("Trigger %s skipped, channel is %s", trigger.label, self._lifecycle.state.value)
            return None

        try:
            return await self._pipeline.run_once()
        except Exception:
            LOGGER.exception("Unexpected error in pipeline run for trigger %s", trigger.label)
            return None
