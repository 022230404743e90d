"""ReminderScheduler — timer lifecycle and the single entry point for batches."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from src.reminders.models import BatchResult, SchedulerStatus

if TYPE_CHECKING:
    from src.reminders.runner import BatchRunner

logger = logging.getLogger(__name__)

JOB_ID = "reminder-check"

DEFAULT_INTERVAL = timedelta(minutes=15)


class ReminderScheduler:
    """Runs the reminder batch every *interval* and on demand.

    The timer, the immediate run performed by ``start()`` and
    ``trigger_manual_check()`` all go through ``_trigger()``, which allows a
    single batch in flight.  A trigger that arrives while a batch is running
    does not start another one; it waits for the running batch and returns
    that batch's result.

    Args:
        runner: Executes one batch.
        interval: Time between timer firings.
        timezone: IANA timezone for the APScheduler instance.
    """

    def __init__(
        self,
        runner: BatchRunner,
        *,
        interval: timedelta = DEFAULT_INTERVAL,
        timezone: str = "UTC",
    ) -> None:
        self._runner = runner
        self._interval = interval
        self._timezone = timezone
        self._scheduler: AsyncIOScheduler | None = None
        self._inflight: asyncio.Task[BatchResult] | None = None
        self._initial_run: asyncio.Task[BatchResult] | None = None
        self._last_result: BatchResult | None = None
        self._last_run_at: datetime | None = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    @property
    def batch_in_progress(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    # -- Lifecycle -------------------------------------------------------------

    async def start(self) -> None:
        """Arm the recurring timer and kick off one immediate batch."""
        if self.running:
            logger.info("Reminder scheduler is already running")
            return

        scheduler = AsyncIOScheduler(
            timezone=self._timezone,
            job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": 60},
        )
        scheduler.add_job(
            self._run_scheduled,
            trigger=IntervalTrigger(
                seconds=int(self._interval.total_seconds()), timezone=self._timezone
            ),
            id=JOB_ID,
            name="Check due task reminders",
            replace_existing=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info(
            "Reminder scheduler started - checking for due tasks every %s (tz=%s)",
            self._interval,
            self._timezone,
        )

        self._initial_run = asyncio.create_task(self._trigger("startup"))

    async def stop(self) -> None:
        """Disarm the timer. A batch that is already running is allowed to finish."""
        if not self.running:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None

        initial_run = self._initial_run
        pending = {
            task
            for task in (initial_run, self._inflight)
            if task is not None and not task.done()
        }
        if pending:
            logger.info("Waiting for the running reminder batch to finish")
            await asyncio.wait(pending)
        # A start() during the wait owns a newer handle.
        if self._initial_run is initial_run:
            self._initial_run = None
        logger.info("Reminder scheduler stopped")

    # -- Triggers --------------------------------------------------------------

    async def trigger_manual_check(self) -> BatchResult:
        """Run a batch now, whether or not the timer is armed."""
        return await self._trigger("manual")

    def get_status(self) -> SchedulerStatus:
        next_run = None
        if self._scheduler is not None:
            job = self._scheduler.get_job(JOB_ID)
            next_run = job.next_run_time if job else None
        return SchedulerStatus(
            running=self.running,
            next_scheduled_run=next_run,
            batch_in_progress=self.batch_in_progress,
            last_run_at=self._last_run_at,
            last_result=self._last_result,
        )

    async def _run_scheduled(self) -> None:
        """Callback invoked by APScheduler."""
        await self._trigger("timer")

    async def _trigger(self, source: str) -> BatchResult:
        inflight = self._inflight
        if inflight is not None and not inflight.done():
            logger.info("Reminder batch already in progress; %s trigger joins it", source)
            return await asyncio.shield(inflight)

        logger.info("Checking for due tasks (trigger=%s)", source)
        self._inflight = asyncio.create_task(self._execute())
        return await asyncio.shield(self._inflight)

    async def _execute(self) -> BatchResult:
        try:
            result = await self._runner.run_batch()
        except Exception as exc:
            logger.exception("Reminder batch crashed")
            now = datetime.now(UTC)
            result = BatchResult(
                started_at=now, finished_at=now, error=f"batch crashed: {type(exc).__name__}"
            )
        self._last_result = result
        self._last_run_at = result.finished_at or datetime.now(UTC)
        return result
