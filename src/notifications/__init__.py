"""Notification channel abstraction layer."""

from src.notifications.channels import NotificationChannel
from src.notifications.sms_channel import SMSChannel

__all__ = [
    "NotificationChannel",
    "SMSChannel",
]
