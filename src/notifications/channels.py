"""NotificationChannel protocol — interface for reminder delivery channels."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from src.reminders.models import SendResult


@runtime_checkable
class NotificationChannel(Protocol):
    """Protocol that all notification channels must satisfy.

    Channels report delivery problems through the returned ``SendResult``
    rather than by raising.
    """

    @property
    def name(self) -> str:
        """Unique channel identifier (e.g. 'sms')."""
        ...

    async def send(self, destination: str, message: str) -> SendResult:
        """Deliver *message* to *destination*."""
        ...
