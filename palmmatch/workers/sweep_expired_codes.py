"""
Delete expired compatibility codes.

Meant for cron; safe to run alongside live resolves. Never fails the job on a
store outage: the sweep is best-effort and the next run picks up the rest.

    palmmatch-sweep [--now 2025-03-01T00:00:00Z]
"""
from __future__ import annotations

import argparse
import asyncio
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from palmmatch.core.config import settings
from palmmatch.core.logging import bind_request_id, configure_logging, log_event
from palmmatch.features.codes.service import get_code_broker


def _parse_now(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


async def sweep(now: Optional[datetime] = None) -> int:
    return await get_code_broker().sweep_expired(now)


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Delete expired compatibility codes.")
    parser.add_argument("--now", help="ISO timestamp to sweep as of (default: current UTC time).")
    args = parser.parse_args(argv)

    configure_logging(settings.ENV)
    with bind_request_id(f"sweep-{uuid4().hex[:8]}"):
        deleted = asyncio.run(sweep(_parse_now(args.now)))
        log_event("info", "worker.sweep.done", event_type="worker.sweep", extra={"deleted": deleted})
    print({"deleted": deleted})
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
