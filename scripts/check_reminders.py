#!/usr/bin/env python3
"""Run a single reminder batch and print the outcome.

Usage examples:
    # Send reminders for everything due in the next hour
    uv run python scripts/check_reminders.py

    # Look two hours ahead without pausing between sends
    uv run python scripts/check_reminders.py --window-minutes 120 --pacing-seconds 0

    # Log messages instead of sending them
    uv run python scripts/check_reminders.py --dry-run
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Allow running from project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.config import settings


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run one reminder batch now.")
    parser.add_argument(
        "--window-minutes",
        type=int,
        default=settings.reminder_due_window_minutes,
        help="Lookahead for due tasks (default: %(default)s)",
    )
    parser.add_argument(
        "--pacing-seconds",
        type=float,
        default=settings.reminder_pacing_seconds,
        help="Delay between sends (default: %(default)s)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Simulate SMS delivery instead of calling Telnyx",
    )
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> int:
    from src.main import build_scheduler
    from src.sms.client import close_session

    settings.reminder_due_window_minutes = args.window_minutes
    settings.reminder_pacing_seconds = args.pacing_seconds
    if args.dry_run:
        settings.telnyx_api_key = ""

    scheduler = build_scheduler(simulate=True if args.dry_run else None)
    try:
        result = await scheduler.trigger_manual_check()
    finally:
        await close_session()

    if not result.ok:
        print(f"ERROR: {result.error}", file=sys.stderr)
        return 1
    summary = result.summary()
    print(
        f"attempted={summary['attempted']} succeeded={summary['succeeded']} "
        f"failed={summary['failed']} skipped={summary['skipped']}"
    )
    return 0


def main() -> None:
    sys.exit(asyncio.run(_run(parse_args())))


if __name__ == "__main__":
    main()
