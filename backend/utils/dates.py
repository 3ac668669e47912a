# backend/utils/dates.py
from datetime import datetime, timezone
from typing import Optional


# All timestamps are stored as naive UTC
def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def truncate_to_minute(value: datetime) -> datetime:
    return to_naive_utc(value).replace(second=0, microsecond=0)
