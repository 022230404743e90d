"""BatchRunner — one pass over the due set."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from src.reminders.models import BatchResult
from src.reminders.pacing import FixedDelayPacer

if TYPE_CHECKING:
    from src.reminders.dispatch import ReminderDispatcher
    from src.reminders.models import Task
    from src.reminders.ports import TaskStore

logger = logging.getLogger(__name__)

DEFAULT_DUE_WINDOW = timedelta(hours=1)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class BatchRunner:
    """Selects the due tasks and dispatches their reminders one at a time.

    Args:
        store: Source of the due set.
        dispatcher: Handles each task.
        due_window: Lookahead added to "now" when selecting tasks.
        pacer: Enforces the gap between consecutive dispatches.
        max_failed_attempts: Stop retrying a task after this many failures
            since its last edit. ``0`` retries forever.
        clock: Returns the current aware datetime.
    """

    def __init__(
        self,
        store: TaskStore,
        dispatcher: ReminderDispatcher,
        *,
        due_window: timedelta = DEFAULT_DUE_WINDOW,
        pacer: FixedDelayPacer | None = None,
        max_failed_attempts: int = 0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._dispatcher = dispatcher
        self._due_window = due_window
        self._pacer = pacer if pacer is not None else FixedDelayPacer(1.0)
        self._max_failed = max_failed_attempts
        self._clock = clock

    async def run_batch(self) -> BatchResult:
        """Dispatch reminders for every due task. Never raises."""
        result = BatchResult(started_at=self._clock())
        try:
            tasks = await self._store.list_due_tasks(self._due_window, now=result.started_at)
        except Exception as exc:
            logger.exception("Could not load due tasks")
            result.error = f"due task query failed: {type(exc).__name__}"
            result.finished_at = self._clock()
            return result

        if not tasks:
            logger.info("No due tasks found")
            result.finished_at = self._clock()
            return result

        logger.info("Found %d due task(s) that need reminders", len(tasks))
        self._pacer.reset()
        for task in tasks:
            if await self._retry_ceiling_reached(task):
                result.skipped += 1
                continue

            await self._pacer.wait()
            result.attempted += 1
            try:
                outcome = await self._dispatcher.process(task)
            except Exception:
                logger.exception("Unhandled error dispatching task %s", task.id)
                result.failed += 1
            else:
                if outcome.success:
                    result.succeeded += 1
                else:
                    result.failed += 1
            finally:
                self._pacer.mark()

        result.finished_at = self._clock()
        logger.info(
            "Reminder batch finished: attempted=%d succeeded=%d failed=%d skipped=%d",
            result.attempted,
            result.succeeded,
            result.failed,
            result.skipped,
        )
        return result

    async def _retry_ceiling_reached(self, task: Task) -> bool:
        if self._max_failed <= 0:
            return False
        since = task.updated_at or task.created_at
        try:
            failures = await self._store.count_failed_attempts(task.id, since=since)
        except Exception:
            logger.exception("Could not count failed attempts for task %s", task.id)
            return False
        if failures >= self._max_failed:
            logger.warning(
                "Not retrying reminder for task '%s' (%s): %d failed attempt(s) since last edit",
                task.title,
                task.id,
                failures,
            )
            return True
        return False
