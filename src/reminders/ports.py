"""TaskStore protocol — the storage capabilities the reminder loop relies on."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime, timedelta

    from src.reminders.models import NotificationRecord, Task


@runtime_checkable
class TaskStore(Protocol):
    """Protocol that every task store must satisfy."""

    async def list_due_tasks(
        self, window: timedelta, *, now: datetime | None = None
    ) -> list[Task]:
        """Tasks with ``due_at <= now + window``, not completed, reminder not sent.

        Ordered by ``due_at`` ascending, ties in the store's natural order.
        """
        ...

    async def mark_reminder_sent(self, task_id: str) -> bool:
        """Set the reminder flag. Returns False if the task was not found."""
        ...

    async def append_notification(self, record: NotificationRecord) -> None:
        """Persist a dispatch attempt. Raises on storage errors."""
        ...

    async def count_failed_attempts(self, task_id: str, *, since: datetime) -> int:
        """Number of failed records for *task_id* created at or after *since*."""
        ...
