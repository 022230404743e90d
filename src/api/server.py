"""HTTP surface for the reminder scheduler.

Routes:

- ``GET  /api/health``           liveness plus scheduler status
- ``GET  /api/scheduler/status`` running flag and next timer firing
- ``POST /api/scheduler/check``  run a batch now and report aggregate counts

Uses aiohttp's AppRunner/TCPSite so it shares the scheduler's event loop.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from aiohttp import web

from src.config import settings

if TYPE_CHECKING:
    from src.reminders.scheduler import ReminderScheduler

logger = logging.getLogger(__name__)

SCHEDULER_KEY = web.AppKey("scheduler", object)


def _scheduler(request: web.Request) -> ReminderScheduler:
    return request.app[SCHEDULER_KEY]


async def _health(request: web.Request) -> web.Response:
    """GET /api/health — liveness check."""
    return web.json_response({
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "scheduler": _scheduler(request).get_status().to_dict(),
    })


async def _status(request: web.Request) -> web.Response:
    """GET /api/scheduler/status."""
    return web.json_response(_scheduler(request).get_status().to_dict())


async def _manual_check(request: web.Request) -> web.Response:
    """POST /api/scheduler/check — run the reminder batch immediately."""
    secret = request.headers.get("X-Api-Secret", "")
    if settings.api_secret and secret != settings.api_secret:
        logger.warning("Manual check rejected: invalid secret")
        return web.json_response({"error": "unauthorized"}, status=401)

    logger.info("Running manual check for due tasks...")
    result = await _scheduler(request).trigger_manual_check()
    if not result.ok:
        return web.json_response({"error": "Failed to run manual check"}, status=500)
    return web.json_response({
        "message": "Manual check completed",
        "result": result.summary(),
    })


def create_web_app(scheduler: ReminderScheduler) -> web.Application:
    """Build the aiohttp Application with routes."""
    app = web.Application()
    app[SCHEDULER_KEY] = scheduler
    app.router.add_get("/api/health", _health)
    app.router.add_get("/api/scheduler/status", _status)
    app.router.add_post("/api/scheduler/check", _manual_check)
    return app


class ApiServer:
    """Manages the aiohttp server lifecycle."""

    def __init__(self, scheduler: ReminderScheduler, port: int | None = None) -> None:
        self.port = port or settings.api_port
        self._scheduler = scheduler
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        """Start listening."""
        app = create_web_app(self._scheduler)
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, "0.0.0.0", self.port)  # noqa: S104
        await site.start()
        logger.info("Reminder API listening on port %d", self.port)

    async def stop(self) -> None:
        """Shut down the server gracefully."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Reminder API stopped")
