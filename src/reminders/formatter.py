"""Reminder message text.

Pure functions only: the same task, ``now`` and timezone always produce the
same message, so the wording can be tested without touching the dispatch path.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, tzinfo
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.reminders.models import Task

CLOSING_LINE = "Complete your task to stop reminders."


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def describe_interval(delta: timedelta) -> str:
    """Human-readable length of *delta*: whole hours, or minutes below an hour."""
    seconds = abs(int(delta.total_seconds()))
    if seconds < 60:
        return "less than a minute"
    if seconds < 3600:
        return _plural(seconds // 60, "minute")
    return _plural(seconds // 3600, "hour")


def timing_line(due_at: datetime, now: datetime) -> str:
    """``OVERDUE by …`` once the deadline has passed, ``Due in …`` before."""
    if due_at < now:
        return f"OVERDUE by {describe_interval(now - due_at)}"
    return f"Due in {describe_interval(due_at - now)}"


def format_due(due_at: datetime, tz: tzinfo = UTC) -> str:
    """Render a deadline like ``Mar 05, 2025 3:30 PM``."""
    local = due_at.astimezone(tz)
    hour = local.hour % 12 or 12
    return f"{local:%b %d, %Y} {hour}:{local:%M %p}"


def format_reminder(task: Task, *, now: datetime | None = None, tz: tzinfo = UTC) -> str:
    """Build the SMS body for *task*."""
    now = now or datetime.now(UTC)
    lines = [
        f'🔔 Task Reminder: "{task.title}"',
        "",
        f"📅 {timing_line(task.due_at, now)}",
        f"⏰ Due: {format_due(task.due_at, tz)}",
        f"🎯 Priority: {task.priority.value.upper()}",
    ]
    description = (task.description or "").strip()
    if description:
        lines += ["", f"📝 {description}"]
    lines += ["", CLOSING_LINE]
    return "\n".join(lines)
