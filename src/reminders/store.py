"""SQLTaskStore — libsql persistence for tasks and the notification log."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from src.db import connection
from src.reminders.models import (
    NotificationOutcome,
    NotificationRecord,
    Priority,
    Task,
    TaskStatus,
    to_db_timestamp,
    utcnow,
)

if TYPE_CHECKING:
    from datetime import datetime, timedelta
    from pathlib import Path

    from src.db import AsyncConnection

logger = logging.getLogger(__name__)

_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS tasks (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL,
        description TEXT,
        due_at TEXT NOT NULL,
        priority TEXT NOT NULL DEFAULT 'medium'
            CHECK (priority IN ('low', 'medium', 'high')),
        status TEXT NOT NULL DEFAULT 'pending'
            CHECK (status IN ('pending', 'in_progress', 'completed')),
        destination TEXT NOT NULL,
        reminder_sent INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS notification_log (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        task_id TEXT NOT NULL REFERENCES tasks (id) ON DELETE CASCADE,
        destination TEXT NOT NULL,
        message TEXT NOT NULL,
        outcome TEXT NOT NULL CHECK (outcome IN ('sent', 'failed')),
        sent_at TEXT,
        error_detail TEXT,
        delivery_id TEXT,
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_tasks_due_at ON tasks (due_at)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_reminder_sent ON tasks (reminder_sent)",
    "CREATE INDEX IF NOT EXISTS idx_notification_log_task_id ON notification_log (task_id)",
]

_EDITABLE_FIELDS = {"title", "description", "due_at", "priority", "status", "destination"}


class SQLTaskStore:
    """Persists tasks and notification records in SQLite / Turso.

    Singleton accessed via ``SQLTaskStore.get()``.  Pass an explicit *db_path*
    for test isolation (e.g. ``tmp_path / "test.db"``).
    """

    _instance: SQLTaskStore | None = None

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path
        self._initialised = False

    @classmethod
    def get(cls) -> SQLTaskStore:
        """Return the shared store instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    async def _ensure_schema(self, db: AsyncConnection) -> None:
        if not self._initialised:
            await db.executescript(_SCHEMA)
            self._initialised = True

    # -- Reminder loop ---------------------------------------------------------

    async def list_due_tasks(
        self, window: timedelta, *, now: datetime | None = None
    ) -> list[Task]:
        """Return open, un-reminded tasks due within *window* of *now*."""
        horizon = to_db_timestamp((now or utcnow()) + window)
        async with connection(self._db_path) as db:
            await self._ensure_schema(db)
            cursor = await db.execute(
                """
                SELECT * FROM tasks
                WHERE due_at <= ?
                  AND status != 'completed'
                  AND reminder_sent = 0
                ORDER BY due_at ASC, rowid ASC
                """,
                (horizon,),
            )
            rows = await cursor.fetchall()
        return [Task.from_row(row) for row in rows]

    async def mark_reminder_sent(self, task_id: str) -> bool:
        """Flag the task as reminded. Returns False if no such task exists."""
        async with connection(self._db_path) as db:
            await self._ensure_schema(db)
            cursor = await db.execute(
                "UPDATE tasks SET reminder_sent = 1 WHERE id = ?", (task_id,)
            )
            await db.commit()
            return cursor.rowcount > 0

    async def append_notification(self, record: NotificationRecord) -> None:
        """Append a dispatch attempt to the notification log."""
        async with connection(self._db_path) as db:
            await self._ensure_schema(db)
            await db.execute(
                """
                INSERT INTO notification_log
                    (task_id, destination, message, outcome, sent_at,
                     error_detail, delivery_id, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.task_id,
                    record.destination,
                    record.message,
                    record.outcome.value,
                    to_db_timestamp(record.sent_at) if record.sent_at else None,
                    record.error_detail,
                    record.delivery_id,
                    to_db_timestamp(record.created_at),
                ),
            )
            await db.commit()

    async def count_failed_attempts(self, task_id: str, *, since: datetime) -> int:
        async with connection(self._db_path) as db:
            await self._ensure_schema(db)
            cursor = await db.execute(
                """
                SELECT COUNT(*) FROM notification_log
                WHERE task_id = ? AND outcome = ? AND created_at >= ?
                """,
                (task_id, NotificationOutcome.FAILED.value, to_db_timestamp(since)),
            )
            row = await cursor.fetchone()
        return int(row[0]) if row else 0

    async def list_notifications(self, task_id: str | None = None) -> list[NotificationRecord]:
        """Return log records in insertion order, optionally for one task."""
        sql = "SELECT * FROM notification_log"
        params: tuple = ()
        if task_id is not None:
            sql += " WHERE task_id = ?"
            params = (task_id,)
        sql += " ORDER BY id ASC"
        async with connection(self._db_path) as db:
            await self._ensure_schema(db)
            cursor = await db.execute(sql, params)
            rows = await cursor.fetchall()
        return [NotificationRecord.from_row(row) for row in rows]

    # -- Task CRUD -------------------------------------------------------------

    async def add_task(self, task: Task) -> Task:
        """Insert a new task. Returns the same task object."""
        async with connection(self._db_path) as db:
            await self._ensure_schema(db)
            await db.execute(
                """
                INSERT INTO tasks
                    (id, title, description, due_at, priority, status,
                     destination, reminder_sent, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                task.to_row(),
            )
            await db.commit()
        logger.info("Added task: %s (%s)", task.title, task.id)
        return task

    async def get_task(self, task_id: str) -> Task | None:
        """Fetch a task by ID, or None if not found."""
        async with connection(self._db_path) as db:
            await self._ensure_schema(db)
            cursor = await db.execute("SELECT * FROM tasks WHERE id = ?", (task_id,))
            row = await cursor.fetchone()
        return Task.from_row(row) if row else None

    async def list_tasks(self) -> list[Task]:
        """Return every task, earliest deadline first."""
        async with connection(self._db_path) as db:
            await self._ensure_schema(db)
            cursor = await db.execute("SELECT * FROM tasks ORDER BY due_at ASC, rowid ASC")
            rows = await cursor.fetchall()
        return [Task.from_row(row) for row in rows]

    async def update_task(self, task_id: str, **fields: Any) -> Task | None:
        """Apply an edit and return the updated task (None if not found).

        Moving ``due_at`` re-arms the reminder for the new deadline.
        """
        unknown = set(fields) - _EDITABLE_FIELDS
        if unknown:
            msg = f"Cannot update field(s): {', '.join(sorted(unknown))}"
            raise ValueError(msg)
        if not fields:
            return await self.get_task(task_id)

        values: dict[str, Any] = dict(fields)
        if "due_at" in values:
            values["due_at"] = to_db_timestamp(values["due_at"])
            values["reminder_sent"] = 0
        if "priority" in values:
            values["priority"] = Priority(values["priority"]).value
        if "status" in values:
            values["status"] = TaskStatus(values["status"]).value
        values["updated_at"] = to_db_timestamp(utcnow())

        assignments = ", ".join(f"{name} = ?" for name in values)
        async with connection(self._db_path) as db:
            await self._ensure_schema(db)
            cursor = await db.execute(
                f"UPDATE tasks SET {assignments} WHERE id = ?",  # noqa: S608
                (*values.values(), task_id),
            )
            await db.commit()
            if cursor.rowcount == 0:
                return None
        logger.info("Updated task %s (%s)", task_id, ", ".join(sorted(fields)))
        return await self.get_task(task_id)

    async def delete_task(self, task_id: str) -> bool:
        """Delete a task and its log records. Returns True if a row was removed."""
        async with connection(self._db_path) as db:
            await self._ensure_schema(db)
            cursor = await db.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            await db.commit()
            deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Deleted task: %s", task_id)
        return deleted
