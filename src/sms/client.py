"""Telnyx SMS API client using aiohttp."""

from __future__ import annotations

import logging

import aiohttp

from src.config import settings
from src.reminders.models import SendResult

logger = logging.getLogger(__name__)

# Maximum SMS body length (~10 segments). Longer messages risk delivery issues.
MAX_SMS_LENGTH = 1600

TELNYX_API_URL = "https://api.telnyx.com/v2/messages"

_session: aiohttp.ClientSession | None = None


def _get_session() -> aiohttp.ClientSession:
    """Return (and lazily create) the shared aiohttp session."""
    global _session  # noqa: PLW0603
    if _session is None or _session.closed:
        _session = aiohttp.ClientSession(
            headers={"Authorization": f"Bearer {settings.telnyx_api_key}"},
            timeout=aiohttp.ClientTimeout(total=30),
        )
    return _session


async def close_session() -> None:
    """Close the shared session (called on shutdown)."""
    global _session  # noqa: PLW0603
    if _session is not None and not _session.closed:
        await _session.close()
    _session = None


def truncate_body(body: str) -> str:
    if len(body) > MAX_SMS_LENGTH:
        return body[: MAX_SMS_LENGTH - 3] + "..."
    return body


async def send_sms(to: str, body: str) -> SendResult:
    """Send an SMS via Telnyx."""
    if not settings.telnyx_api_key or not settings.telnyx_phone_number:
        logger.error("SMS not configured — missing TELNYX_API_KEY or TELNYX_PHONE_NUMBER")
        return SendResult.failure("SMS provider not configured")

    body = truncate_body(body)
    payload = {
        "from": settings.telnyx_phone_number,
        "to": to,
        "text": body,
        "type": "SMS",
    }

    session = _get_session()
    try:
        async with session.post(TELNYX_API_URL, json=payload) as resp:
            if resp.status == 200:
                data = await resp.json(content_type=None)
                message_id = (data.get("data") or {}).get("id")
                logger.info("SMS sent to %s (%d chars) id=%s", to, len(body), message_id)
                return SendResult.success(message_id)
            text = await resp.text()
            logger.error("SMS send failed: status=%d body=%s", resp.status, text[:200])
            return SendResult.failure(f"Telnyx returned HTTP {resp.status}: {text[:200]}")
    except Exception as exc:
        logger.exception("SMS send failed (network error)")
        return SendResult.failure(f"Network error: {exc}")
