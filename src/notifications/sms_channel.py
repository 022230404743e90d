"""SMS implementation of the NotificationChannel protocol."""

from __future__ import annotations

import logging
import time

from src.config import settings
from src.reminders.models import SendResult
from src.sms.client import send_sms, truncate_body

logger = logging.getLogger(__name__)


class SMSChannel:
    """Sends reminders via SMS (Telnyx).

    Args:
        simulate: When true and Telnyx credentials are missing, messages are
            logged instead of sent and reported as delivered.  Defaults to
            ``settings.sms_simulate``.
    """

    def __init__(self, *, simulate: bool | None = None) -> None:
        self._simulate = settings.sms_simulate if simulate is None else simulate

    @property
    def name(self) -> str:
        return "sms"

    @property
    def simulated(self) -> bool:
        return self._simulate and not settings.sms_configured

    async def send(self, destination: str, message: str) -> SendResult:
        """Send a plain text SMS."""
        if self.simulated:
            delivery_id = f"simulated_{int(time.time() * 1000)}"
            logger.info(
                "SIMULATED SMS to %s (%s):\n%s", destination, delivery_id, truncate_body(message)
            )
            return SendResult.success(delivery_id)
        return await send_sms(destination, message)
