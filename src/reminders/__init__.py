"""Task deadline reminders — selection, dispatch, pacing and scheduling."""

from src.reminders.dispatch import ReminderDispatcher
from src.reminders.models import BatchResult, NotificationRecord, SchedulerStatus, Task
from src.reminders.ports import TaskStore
from src.reminders.runner import BatchRunner
from src.reminders.scheduler import ReminderScheduler
from src.reminders.store import SQLTaskStore

__all__ = [
    "BatchResult",
    "BatchRunner",
    "NotificationRecord",
    "ReminderDispatcher",
    "ReminderScheduler",
    "SQLTaskStore",
    "SchedulerStatus",
    "Task",
    "TaskStore",
]
