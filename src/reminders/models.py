"""Reminder data models: tasks, notification records, and run results."""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import StrEnum


class Priority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskStatus(StrEnum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class NotificationOutcome(StrEnum):
    SENT = "sent"
    FAILED = "failed"


class FailureKind(StrEnum):
    """Why a dispatch attempt did not deliver a reminder."""

    INVALID_DESTINATION = "invalid_destination"
    CHANNEL = "channel"
    INTERNAL = "internal"


ERROR_INVALID_DESTINATION = "invalid destination format"
ERROR_INTERNAL = "internal dispatch error"


def utcnow() -> datetime:
    return datetime.now(UTC)


def to_db_timestamp(value: datetime) -> str:
    """Render *value* as UTC ISO 8601 text with microsecond precision.

    Naive datetimes are taken to be UTC.  All stored timestamps share this
    shape, so comparing the strings compares the instants.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def from_db_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def make_task_id() -> str:
    """Generate a new task ID."""
    return uuid.uuid4().hex


@dataclass
class Task:
    """A task with a deadline, as stored by the task store.

    Attributes:
        id: Unique identifier (UUID hex).
        title: Short human-readable title.
        due_at: Deadline (timezone-aware).
        destination: Phone number that receives the reminder.
        description: Optional longer text, included in the reminder.
        priority: ``low``, ``medium`` or ``high``.
        status: ``pending``, ``in_progress`` or ``completed``.
        reminder_sent: Set once a reminder for the current ``due_at`` was delivered.
        created_at: Creation time.
        updated_at: Last edit time; failed attempts are counted from here.
    """

    id: str
    title: str
    due_at: datetime
    destination: str
    description: str | None = None
    priority: Priority = Priority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    reminder_sent: bool = False
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        self.priority = Priority(self.priority)
        self.status = TaskStatus(self.status)
        if self.due_at.tzinfo is None:
            self.due_at = self.due_at.replace(tzinfo=UTC)
        if self.updated_at is None:
            self.updated_at = self.created_at

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    # -- Serialization ---------------------------------------------------------

    def to_row(self) -> tuple:
        """Serialize to a tuple matching the ``tasks`` column order."""
        return (
            self.id,
            self.title,
            self.description,
            to_db_timestamp(self.due_at),
            self.priority.value,
            self.status.value,
            self.destination,
            int(self.reminder_sent),
            to_db_timestamp(self.created_at),
            to_db_timestamp(self.updated_at or self.created_at),
        )

    @classmethod
    def from_row(cls, row: tuple) -> Task:
        """Deserialize from a ``SELECT *`` row of the ``tasks`` table."""
        return cls(
            id=row[0],
            title=row[1],
            description=row[2],
            due_at=from_db_timestamp(row[3]),
            priority=Priority(row[4]),
            status=TaskStatus(row[5]),
            destination=row[6],
            reminder_sent=bool(row[7]),
            created_at=from_db_timestamp(row[8]),
            updated_at=from_db_timestamp(row[9]),
        )


@dataclass(frozen=True)
class NotificationRecord:
    """One dispatch attempt, as written to the append-only notification log."""

    task_id: str
    destination: str
    message: str
    outcome: NotificationOutcome
    sent_at: datetime | None = None
    error_detail: str | None = None
    delivery_id: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    id: int | None = None

    @classmethod
    def sent(
        cls,
        task_id: str,
        destination: str,
        message: str,
        *,
        delivery_id: str | None = None,
        now: datetime | None = None,
    ) -> NotificationRecord:
        ts = now or utcnow()
        return cls(
            task_id=task_id,
            destination=destination,
            message=message,
            outcome=NotificationOutcome.SENT,
            sent_at=ts,
            delivery_id=delivery_id,
            created_at=ts,
        )

    @classmethod
    def failed(
        cls,
        task_id: str,
        destination: str,
        message: str,
        error_detail: str,
        *,
        now: datetime | None = None,
    ) -> NotificationRecord:
        return cls(
            task_id=task_id,
            destination=destination,
            message=message,
            outcome=NotificationOutcome.FAILED,
            error_detail=error_detail,
            created_at=now or utcnow(),
        )

    @classmethod
    def from_row(cls, row: tuple) -> NotificationRecord:
        """Deserialize from a ``SELECT *`` row of the ``notification_log`` table."""
        return cls(
            id=row[0],
            task_id=row[1],
            destination=row[2],
            message=row[3],
            outcome=NotificationOutcome(row[4]),
            sent_at=from_db_timestamp(row[5]),
            error_detail=row[6],
            delivery_id=row[7],
            created_at=from_db_timestamp(row[8]),
        )


@dataclass(frozen=True)
class SendResult:
    """What a notification channel reports back for a single send."""

    ok: bool
    delivery_id: str | None = None
    error_detail: str | None = None

    @classmethod
    def success(cls, delivery_id: str | None = None) -> SendResult:
        return cls(ok=True, delivery_id=delivery_id)

    @classmethod
    def failure(cls, error_detail: str) -> SendResult:
        return cls(ok=False, error_detail=error_detail)


@dataclass(frozen=True)
class DispatchOutcome:
    task_id: str
    success: bool
    failure: FailureKind | None = None
    error_detail: str | None = None
    delivery_id: str | None = None


@dataclass
class BatchResult:
    """Aggregate counts for one batch.

    ``error`` is only set when the due set could not be loaded at all;
    per-task failures are counted, never described here.
    """

    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    started_at: datetime = field(default_factory=utcnow)
    finished_at: datetime | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def summary(self) -> dict[str, int]:
        return {
            "attempted": self.attempted,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
        }


@dataclass(frozen=True)
class SchedulerStatus:
    running: bool
    next_scheduled_run: datetime | None = None
    batch_in_progress: bool = False
    last_run_at: datetime | None = None
    last_result: BatchResult | None = None

    def to_dict(self) -> dict:
        """JSON-friendly representation (timestamps as ISO strings)."""
        data = {
            "running": self.running,
            "next_scheduled_run": _iso(self.next_scheduled_run),
            "batch_in_progress": self.batch_in_progress,
            "last_run_at": _iso(self.last_run_at),
            "last_result": None,
        }
        if self.last_result is not None:
            result = asdict(self.last_result)
            result["started_at"] = _iso(self.last_result.started_at)
            result["finished_at"] = _iso(self.last_result.finished_at)
            result.pop("error")
            result["ok"] = self.last_result.ok
            data["last_result"] = result
        return data


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None
