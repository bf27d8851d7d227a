"""
Time helpers for the ledger.

Snapshot ordering relies on (business date, created_at), so created_at must
never tie or go backwards within a process.
"""

import threading
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from backoffice.app.core.config import settings

_lock = threading.Lock()
_last: datetime = datetime.min.replace(tzinfo=timezone.utc)


def utcnow() -> datetime:
    """Strictly increasing UTC timestamp (bumped by 1us on ties)."""
    global _last
    with _lock:
        now = datetime.now(timezone.utc)
        if now <= _last:
            now = _last + timedelta(microseconds=1)
        _last = now
        return now


def get_business_date() -> date:
    """Today's date in the configured business timezone."""
    return datetime.now(ZoneInfo(settings.business_timezone)).date()
