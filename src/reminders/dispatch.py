"""ReminderDispatcher — delivers the reminder for a single due task."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime, tzinfo
from typing import TYPE_CHECKING

from src.reminders.formatter import format_reminder
from src.reminders.models import (
    ERROR_INTERNAL,
    ERROR_INVALID_DESTINATION,
    DispatchOutcome,
    FailureKind,
    NotificationRecord,
)
from src.reminders.phone import is_valid_phone, normalize_phone

if TYPE_CHECKING:
    from src.notifications.channels import NotificationChannel
    from src.reminders.models import Task
    from src.reminders.ports import TaskStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ReminderDispatcher:
    """Formats, sends, flags and logs the reminder for one task.

    ``process()`` never raises: every attempt ends as a ``DispatchOutcome``
    and, storage permitting, one ``NotificationRecord``.  The reminder flag is
    only set after the channel confirms delivery, so any failure leaves the
    task eligible for the next batch.

    Args:
        store: Task store holding the reminder flag and notification log.
        channel: Channel that delivers the message.
        default_country_code: Prefix for bare national phone numbers.
        display_tz: Timezone the deadline is rendered in.
        clock: Returns the current aware datetime.
    """

    def __init__(
        self,
        store: TaskStore,
        channel: NotificationChannel,
        *,
        default_country_code: str = "1",
        display_tz: tzinfo = UTC,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._channel = channel
        self._country_code = default_country_code
        self._tz = display_tz
        self._clock = clock

    async def process(self, task: Task) -> DispatchOutcome:
        """Attempt delivery of *task*'s reminder."""
        destination = task.destination
        message = ""
        try:
            destination = normalize_phone(task.destination, self._country_code)
            if not is_valid_phone(destination):
                logger.warning(
                    "Invalid destination for task %s: %r", task.id, task.destination
                )
                await self._log_failure(
                    task, task.destination, message, ERROR_INVALID_DESTINATION
                )
                return DispatchOutcome(
                    task_id=task.id,
                    success=False,
                    failure=FailureKind.INVALID_DESTINATION,
                    error_detail=ERROR_INVALID_DESTINATION,
                )

            message = format_reminder(task, now=self._clock(), tz=self._tz)
            logger.info(
                "Sending reminder for task '%s' (%s) via %s",
                task.title,
                task.id,
                self._channel.name,
            )
            result = await self._channel.send(destination, message)

            if not result.ok:
                detail = result.error_detail or "send failed"
                logger.warning(
                    "Reminder delivery failed for task '%s' (%s): %s",
                    task.title,
                    task.id,
                    detail,
                )
                await self._log_failure(task, destination, message, detail)
                return DispatchOutcome(
                    task_id=task.id,
                    success=False,
                    failure=FailureKind.CHANNEL,
                    error_detail=detail,
                )

            if not await self._store.mark_reminder_sent(task.id):
                logger.warning("Task %s vanished before it could be flagged as reminded", task.id)
            await self._log_sent(task, destination, message, result.delivery_id)
            logger.info("Reminder sent for task '%s' (%s)", task.title, task.id)
            return DispatchOutcome(
                task_id=task.id, success=True, delivery_id=result.delivery_id
            )
        except Exception:
            logger.exception("Reminder dispatch crashed for task %s", task.id)
            await self._log_failure(task, destination, message, ERROR_INTERNAL)
            return DispatchOutcome(
                task_id=task.id,
                success=False,
                failure=FailureKind.INTERNAL,
                error_detail=ERROR_INTERNAL,
            )

    # -- Audit log -------------------------------------------------------------

    async def _log_sent(
        self, task: Task, destination: str, message: str, delivery_id: str | None
    ) -> None:
        # The flag is already set; a lost audit row must not undo the delivery.
        record = NotificationRecord.sent(
            task.id, destination, message, delivery_id=delivery_id, now=self._clock()
        )
        try:
            await self._store.append_notification(record)
        except Exception:
            logger.exception("Failed to log sent notification for task %s", task.id)

    async def _log_failure(
        self, task: Task, destination: str, message: str, detail: str
    ) -> None:
        record = NotificationRecord.failed(
            task.id, destination, message, detail, now=self._clock()
        )
        try:
            await self._store.append_notification(record)
        except Exception:
            logger.exception("Failed to log failed notification for task %s", task.id)
