from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from core.channel import ChannelLifecycle, ChannelState
from core.errors import ConfigUnavailable
from core.models import RunOutcome, RunReport, ScheduleConfig, Trigger
from core.reconciler import ScheduleReconciler

JAKARTA = ZoneInfo("Asia/Jakarta")
UTC = ZoneInfo("UTC")


class FakeConfigStore:
    def __init__(self, times=("08:00", "20:00")) -> None:
        self.times = tuple(times)
        self.error: Optional[Exception] = None

    def latest_config(self) -> ScheduleConfig:
        if self.error is not None:
            raise self.error
        return ScheduleConfig(threshold=1900000, trigger_times=self.times)


class FakeScheduler:
    def __init__(self) -> None:
        self.jobs: dict[int, tuple[int, int, object]] = {}
        self.cancelled: list[int] = []
        self._next = 0

    def add_daily(self, hour, minute, callback, name):
        self._next += 1
        self.jobs[self._next] = (hour, minute, callback)
        return self._next

    def cancel(self, handle) -> None:
        self.cancelled.append(handle)
        self.jobs.pop(handle, None)


class FakePipeline:
    def __init__(self) -> None:
        self.runs = 0

    async def run_once(self) -> RunReport:
        self.runs += 1
        return RunReport(RunOutcome.ABOVE_THRESHOLD)


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def _make(
    store: Optional[FakeConfigStore] = None,
    state: ChannelState = ChannelState.READY,
    now: Optional[datetime] = None,
):
    scheduler = FakeScheduler()
    pipeline = FakePipeline()
    clock = FakeClock(now or datetime(2024, 7, 15, 0, 30, tzinfo=timezone.utc))
    reconciler = ScheduleReconciler(
        config_store=store or FakeConfigStore(),
        scheduler=scheduler,
        pipeline=pipeline,
        lifecycle=ChannelLifecycle(state),
        local_timezone=JAKARTA,
        scheduler_timezone=UTC,
        clock=clock,
    )
    return reconciler, scheduler, pipeline, clock


def test_registers_triggers_converted_to_scheduler_timezone() -> None:
    reconciler, scheduler, _, _ = _make()

    asyncio.run(reconciler.reconcile())

    assert sorted((hour, minute) for hour, minute, _ in scheduler.jobs.values()) == [(1, 0), (13, 0)]
    assert [active.trigger for active in reconciler.active_triggers] == [Trigger(8, 0), Trigger(20, 0)]


def test_trigger_runs_pipeline_only_at_intended_local_minute() -> None:
    reconciler, scheduler, pipeline, clock = _make()
    asyncio.run(reconciler.reconcile())
    callbacks = {(hour, minute): callback for hour, minute, callback in scheduler.jobs.values()}

    # 01:00 UTC is 08:00 in Jakarta.
    clock.now = datetime(2024, 7, 15, 1, 0, 20, tzinfo=timezone.utc)
    asyncio.run(callbacks[(1, 0)]())
    assert pipeline.runs == 1

    # A fire that lands on the wrong local minute is refused.
    clock.now = datetime(2024, 7, 15, 2, 0, tzinfo=timezone.utc)
    asyncio.run(callbacks[(1, 0)]())
    asyncio.run(callbacks[(13, 0)]())
    assert pipeline.runs == 1


def test_trigger_skips_when_channel_not_ready() -> None:
    now = datetime(2024, 7, 15, 1, 0, tzinfo=timezone.utc)
    reconciler, _, pipeline, _ = _make(state=ChannelState.DISCONNECTED, now=now)

    result = asyncio.run(reconciler.fire(Trigger(8, 0)))

    assert result is None
    assert pipeline.runs == 0


def test_malformed_entries_are_skipped() -> None:
    store = FakeConfigStore(times=("25:99", "abc", "08:00", "7", "20:30"))
    reconciler, scheduler, _, _ = _make(store=store)

    asyncio.run(reconciler.reconcile())

    assert sorted((hour, minute) for hour, minute, _ in scheduler.jobs.values()) == [(1, 0), (13, 30)]


def test_reconcile_replaces_all_previous_triggers() -> None:
    store = FakeConfigStore()
    reconciler, scheduler, _, _ = _make(store=store)
    asyncio.run(reconciler.reconcile())
    first_handles = {active.handle for active in reconciler.active_triggers}

    # Same content still gets a full rebuild.
    asyncio.run(reconciler.reconcile())

    assert set(scheduler.cancelled) == first_handles
    assert len(scheduler.jobs) == 2
    assert not first_handles & {active.handle for active in reconciler.active_triggers}


def test_empty_config_clears_triggers() -> None:
    store = FakeConfigStore()
    reconciler, scheduler, _, _ = _make(store=store)
    asyncio.run(reconciler.reconcile())

    store.times = ()
    asyncio.run(reconciler.reconcile())

    assert scheduler.jobs == {}
    assert reconciler.active_triggers == ()


def test_config_unavailable_keeps_prior_triggers() -> None:
    store = FakeConfigStore()
    reconciler, scheduler, _, _ = _make(store=store)
    asyncio.run(reconciler.reconcile())

    store.error = ConfigUnavailable("store down")
    asyncio.run(reconciler.reconcile())

    assert len(scheduler.jobs) == 2
    assert len(reconciler.active_triggers) == 2
    assert scheduler.cancelled == []


def test_pipeline_crash_is_contained() -> None:
    class CrashingPipeline:
        async def run_once(self):
            raise RuntimeError("unexpected")

    now = datetime(2024, 7, 15, 1, 0, tzinfo=timezone.utc)
    reconciler = ScheduleReconciler(
        config_store=FakeConfigStore(),
        scheduler=FakeScheduler(),
        pipeline=CrashingPipeline(),
        lifecycle=ChannelLifecycle(ChannelState.READY),
        local_timezone=JAKARTA,
        scheduler_timezone=UTC,
        clock=FakeClock(now),
    )

    assert asyncio.run(reconciler.fire(Trigger(8, 0))) is None


def test_failed_registration_keeps_the_rest_cancellable() -> None:
    class FlakyScheduler(FakeScheduler):
        def add_daily(self, hour, minute, callback, name):
            if (hour, minute) == (13, 0):
                raise RuntimeError("job store unavailable")
            return super().add_daily(hour, minute, callback, name)

    store = FakeConfigStore(times=("08:00", "20:00", "21:00"))
    scheduler = FlakyScheduler()
    reconciler = ScheduleReconciler(
        config_store=store,
        scheduler=scheduler,
        pipeline=FakePipeline(),
        lifecycle=ChannelLifecycle(ChannelState.READY),
        local_timezone=JAKARTA,
        scheduler_timezone=UTC,
        clock=FakeClock(datetime(2024, 7, 15, 0, 30, tzinfo=timezone.utc)),
    )

    asyncio.run(reconciler.reconcile())
    assert [active.trigger for active in reconciler.active_triggers] == [Trigger(8, 0), Trigger(21, 0)]
    assert set(scheduler.jobs) == {active.handle for active in reconciler.active_triggers}

    store.times = ("09:00",)
    asyncio.run(reconciler.reconcile())

    # Nothing from the first pass is left behind.
    assert [(hour, minute) for hour, minute, _ in scheduler.jobs.values()] == [(2, 0)]


def test_reconciles_whenever_channel_becomes_ready() -> None:
    lifecycle = ChannelLifecycle(ChannelState.DISCONNECTED)
    scheduler = FakeScheduler()
    reconciler = ScheduleReconciler(
        config_store=FakeConfigStore(),
        scheduler=scheduler,
        pipeline=FakePipeline(),
        lifecycle=lifecycle,
        local_timezone=JAKARTA,
        scheduler_timezone=UTC,
        clock=FakeClock(datetime(2024, 7, 15, 0, 30, tzinfo=timezone.utc)),
    )

    async def _until(predicate) -> None:
        while not predicate():
            await asyncio.sleep(0.01)

    async def _scenario() -> None:
        reconciler.reconcile_on_ready()
        await asyncio.sleep(0.05)
        assert scheduler.jobs == {}

        lifecycle.transition(ChannelState.READY)
        await asyncio.wait_for(_until(lambda: len(reconciler.active_triggers) == 2), timeout=2)

        lifecycle.transition(ChannelState.DISCONNECTED)
        lifecycle.transition(ChannelState.READY)
        await asyncio.wait_for(_until(lambda: len(scheduler.cancelled) == 2), timeout=2)

    asyncio.run(_scenario())

    assert len(scheduler.cancelled) == 2
