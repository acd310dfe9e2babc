from __future__ import annotations

import datetime

from chorehub.const import LOCAL_TZ


def now_local() -> datetime.datetime:
    """Current time as an aware datetime in the host's timezone."""
    return datetime.datetime.now(LOCAL_TZ)


def ensure_aware(dt: datetime.datetime) -> datetime.datetime:
    """Attach the local timezone to naive datetimes; aware ones pass through."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=LOCAL_TZ)
    return dt


def to_utc(dt: datetime.datetime | None) -> datetime.datetime | None:
    if dt is None:
        return None
    return ensure_aware(dt).astimezone(datetime.UTC)


def start_of_tomorrow(now: datetime.datetime | None = None) -> datetime.datetime:
    """00:00:00 local time of the day after ``now``."""
    today = ensure_aware(now).astimezone(LOCAL_TZ) if now else now_local()
    tomorrow = today.date() + datetime.timedelta(days=1)
    return datetime.datetime.combine(tomorrow, datetime.time.min, tzinfo=LOCAL_TZ)
