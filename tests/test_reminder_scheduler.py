"""Tests for ReminderScheduler — lifecycle, triggers and the single-flight guard."""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from src.reminders.models import BatchResult
from src.reminders.scheduler import JOB_ID, ReminderScheduler


class _GatedRunner:
    """Runner whose batch blocks until ``gate`` is set."""

    def __init__(self) -> None:
        self.calls = 0
        self.started = asyncio.Event()
        self.gate = asyncio.Event()

    async def run_batch(self) -> BatchResult:
        self.calls += 1
        self.started.set()
        await self.gate.wait()
        return BatchResult(attempted=self.calls, succeeded=self.calls)


@pytest.fixture
def runner() -> AsyncMock:
    r = AsyncMock()
    r.run_batch = AsyncMock(return_value=BatchResult(attempted=1, succeeded=1))
    return r


@pytest.fixture
async def scheduler(runner: AsyncMock):
    s = ReminderScheduler(runner, interval=timedelta(minutes=15), timezone="UTC")
    yield s
    await s.stop()


# -- Lifecycle -----------------------------------------------------------------


async def test_start_and_stop(scheduler: ReminderScheduler) -> None:
    assert scheduler.running is False

    await scheduler.start()
    assert scheduler.running is True

    await scheduler.stop()
    assert scheduler.running is False


async def test_start_runs_one_batch_immediately(
    scheduler: ReminderScheduler, runner: AsyncMock
) -> None:
    await scheduler.start()
    await scheduler._initial_run

    runner.run_batch.assert_awaited_once()


async def test_start_twice_keeps_one_timer(
    scheduler: ReminderScheduler, runner: AsyncMock
) -> None:
    await scheduler.start()
    first = scheduler._scheduler
    await scheduler.start()

    assert scheduler._scheduler is first
    assert len(first.get_jobs()) == 1
    await scheduler._initial_run
    runner.run_batch.assert_awaited_once()


async def test_stop_when_not_running(scheduler: ReminderScheduler) -> None:
    # Should not raise
    await scheduler.stop()
    await scheduler.stop()
    assert scheduler.running is False


async def test_restart_after_stop(scheduler: ReminderScheduler, runner: AsyncMock) -> None:
    await scheduler.start()
    await scheduler.stop()
    await scheduler.start()
    await scheduler._initial_run

    assert scheduler.running is True
    assert len(scheduler._scheduler.get_jobs()) == 1
    assert runner.run_batch.await_count == 2


async def test_timer_job_uses_configured_interval(scheduler: ReminderScheduler) -> None:
    await scheduler.start()

    job = scheduler._scheduler.get_job(JOB_ID)
    assert job is not None
    assert job.trigger.interval == timedelta(minutes=15)
    assert job.max_instances == 1


# -- Status --------------------------------------------------------------------


async def test_status_when_stopped(scheduler: ReminderScheduler) -> None:
    status = scheduler.get_status()
    assert status.running is False
    assert status.next_scheduled_run is None
    assert status.last_result is None


async def test_status_when_running(scheduler: ReminderScheduler) -> None:
    await scheduler.start()
    await scheduler._initial_run

    status = scheduler.get_status()
    assert status.running is True
    assert status.next_scheduled_run is not None
    assert status.last_result is not None
    assert status.last_result.succeeded == 1
    assert status.last_run_at is not None


async def test_status_clears_next_run_after_stop(scheduler: ReminderScheduler) -> None:
    await scheduler.start()
    await scheduler.stop()

    assert scheduler.get_status().next_scheduled_run is None


# -- Triggers ------------------------------------------------------------------


async def test_manual_trigger_while_stopped(
    scheduler: ReminderScheduler, runner: AsyncMock
) -> None:
    result = await scheduler.trigger_manual_check()

    assert result.succeeded == 1
    runner.run_batch.assert_awaited_once()
    assert scheduler.running is False


async def test_timer_callback_runs_batch(
    scheduler: ReminderScheduler, runner: AsyncMock
) -> None:
    await scheduler.start()
    await scheduler._initial_run

    job = scheduler._scheduler.get_job(JOB_ID)
    await job.func()

    assert runner.run_batch.await_count == 2


async def test_runner_crash_is_contained(
    scheduler: ReminderScheduler, runner: AsyncMock
) -> None:
    runner.run_batch.side_effect = RuntimeError("boom")

    result = await scheduler.trigger_manual_check()

    assert not result.ok
    assert "RuntimeError" in result.error
    assert scheduler.get_status().last_result is result


# -- Single flight -------------------------------------------------------------


async def test_overlapping_triggers_share_one_batch() -> None:
    runner = _GatedRunner()
    scheduler = ReminderScheduler(runner)

    first = asyncio.create_task(scheduler.trigger_manual_check())
    await runner.started.wait()
    second = asyncio.create_task(scheduler.trigger_manual_check())
    timer = asyncio.create_task(scheduler._run_scheduled())
    await asyncio.sleep(0)

    assert scheduler.batch_in_progress is True
    runner.gate.set()
    r1, r2, _ = await asyncio.gather(first, second, timer)

    assert runner.calls == 1
    assert r1 is r2
    assert scheduler.batch_in_progress is False


async def test_new_batch_after_previous_finished() -> None:
    runner = _GatedRunner()
    runner.gate.set()
    scheduler = ReminderScheduler(runner)

    await scheduler.trigger_manual_check()
    await scheduler.trigger_manual_check()

    assert runner.calls == 2


async def test_cancelled_caller_does_not_cancel_batch() -> None:
    runner = _GatedRunner()
    scheduler = ReminderScheduler(runner)

    caller = asyncio.create_task(scheduler.trigger_manual_check())
    await runner.started.wait()
    caller.cancel()
    await asyncio.sleep(0)

    assert scheduler.batch_in_progress is True
    runner.gate.set()
    result = await scheduler._inflight
    assert result.succeeded == 1


async def test_stop_waits_for_running_batch() -> None:
    runner = _GatedRunner()
    scheduler = ReminderScheduler(runner)

    await scheduler.start()
    await runner.started.wait()

    stopping = asyncio.create_task(scheduler.stop())
    await asyncio.sleep(0.05)

    assert scheduler.running is False
    assert not stopping.done()

    runner.gate.set()
    await stopping
    assert runner.calls == 1
    assert scheduler.get_status().last_result is not None


async def test_start_during_stop_keeps_new_startup_run() -> None:
    runner = _GatedRunner()
    scheduler = ReminderScheduler(runner)

    await scheduler.start()
    await runner.started.wait()
    first_run = scheduler._initial_run

    stopping = asyncio.create_task(scheduler.stop())
    await asyncio.sleep(0.05)
    await scheduler.start()
    second_run = scheduler._initial_run
    assert second_run is not first_run

    runner.gate.set()
    await stopping

    assert scheduler.running is True
    assert scheduler._initial_run is second_run
    await scheduler.stop()
    assert second_run.done()
    assert scheduler.running is False
