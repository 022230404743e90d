"""Reminder service entry point."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from datetime import timedelta
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from src.config import settings

if TYPE_CHECKING:
    from src.reminders.scheduler import ReminderScheduler

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)


def build_scheduler(*, simulate: bool | None = None) -> ReminderScheduler:
    """Wire store, channel, dispatcher and runner into a ReminderScheduler."""
    from src.notifications.sms_channel import SMSChannel
    from src.reminders.dispatch import ReminderDispatcher
    from src.reminders.pacing import FixedDelayPacer
    from src.reminders.runner import BatchRunner
    from src.reminders.scheduler import ReminderScheduler
    from src.reminders.store import SQLTaskStore

    store = SQLTaskStore.get()
    channel = SMSChannel(simulate=simulate)
    if channel.simulated:
        logger.warning("Telnyx not configured - SMS notifications will be simulated")
    elif not settings.sms_configured:
        logger.warning(
            "Telnyx not configured - set TELNYX_API_KEY and TELNYX_PHONE_NUMBER, "
            "or SMS_SIMULATE=true for development"
        )

    dispatcher = ReminderDispatcher(
        store,
        channel,
        default_country_code=settings.default_country_code,
        display_tz=ZoneInfo(settings.scheduler_timezone),
    )
    runner = BatchRunner(
        store,
        dispatcher,
        due_window=timedelta(minutes=settings.reminder_due_window_minutes),
        pacer=FixedDelayPacer(settings.reminder_pacing_seconds),
        max_failed_attempts=settings.reminder_max_failed_attempts,
    )
    return ReminderScheduler(
        runner,
        interval=timedelta(minutes=settings.reminder_check_interval_minutes),
        timezone=settings.scheduler_timezone,
    )


async def run() -> None:
    """Start the scheduler and API, then wait for SIGINT/SIGTERM."""
    from src.api.server import ApiServer
    from src.sms.client import close_session

    scheduler = build_scheduler()
    server = ApiServer(scheduler)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop_event.set)

    await scheduler.start()
    await server.start()
    try:
        await stop_event.wait()
    finally:
        logger.info("Shutting down gracefully...")
        await server.stop()
        await scheduler.stop()
        await close_session()


def main() -> None:
    asyncio.run(run())


if __name__ == "__main__":
    main()
