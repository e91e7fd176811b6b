"""
DateTime helpers - all operations use IST (Indian Standard Time).
Values read back from SQLite come out naive; they were written as IST,
so naive datetimes are treated as IST.
"""
from datetime import datetime, timezone, timedelta
from typing import Optional

# IST timezone (UTC+5:30)
IST = timezone(timedelta(hours=5, minutes=30))


def now_ist() -> datetime:
    """Current IST datetime (timezone-aware)."""
    return datetime.now(IST)


def to_ist(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure datetime is in IST timezone.
    Naive datetimes are assumed to already be IST.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=IST)
    return dt.astimezone(IST)
