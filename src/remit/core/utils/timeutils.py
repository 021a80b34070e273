# src/remit/core/utils/timeutils.py
from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def now_iso() -> str:
    """ISO-8601 UTC timestamp, the format used for every metadata *_at key."""
    return utc_now().isoformat()
