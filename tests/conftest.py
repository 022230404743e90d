"""Shared test fixtures."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from src.reminders.models import NotificationOutcome, NotificationRecord, Task, TaskStatus


class FakeTaskStore:
    """In-memory TaskStore.

    Keeps tests about the reminder loop itself: selection, flagging and the
    audit trail, without a database.  Set ``fail_appends`` / ``fail_listing``
    to simulate storage outages.
    """

    def __init__(self) -> None:
        self.tasks: dict[str, Task] = {}
        self.records: list[NotificationRecord] = []
        self.marked: list[str] = []
        self.fail_appends = False
        self.fail_listing = False

    def add(self, *tasks: Task) -> None:
        for task in tasks:
            self.tasks[task.id] = task

    async def list_due_tasks(self, window: timedelta, *, now: datetime | None = None):
        if self.fail_listing:
            raise RuntimeError("database is locked")
        horizon = (now or datetime.now(UTC)) + window
        due = [
            t
            for t in self.tasks.values()
            if t.due_at <= horizon and t.status != TaskStatus.COMPLETED and not t.reminder_sent
        ]
        return sorted(due, key=lambda t: t.due_at)

    async def mark_reminder_sent(self, task_id: str) -> bool:
        self.marked.append(task_id)
        task = self.tasks.get(task_id)
        if task is None:
            return False
        task.reminder_sent = True
        return True

    async def append_notification(self, record: NotificationRecord) -> None:
        if self.fail_appends:
            raise RuntimeError("disk I/O error")
        self.records.append(record)

    async def count_failed_attempts(self, task_id: str, *, since: datetime) -> int:
        return sum(
            1
            for r in self.records
            if r.task_id == task_id
            and r.outcome == NotificationOutcome.FAILED
            and r.created_at >= since
        )


@pytest.fixture
def fake_store() -> FakeTaskStore:
    return FakeTaskStore()


@pytest.fixture(autouse=False)
def _no_turso(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure tests use local file, not remote Turso."""
    monkeypatch.setattr("src.config.settings.turso_database_url", "")
