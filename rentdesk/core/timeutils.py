from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo

from rentdesk.core.config import settings


def business_tz() -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE)


def now_local() -> datetime:
    return datetime.now(business_tz())


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def to_local(dt: datetime) -> datetime:
    """Naive datetimes are taken to be business-local wall-clock values."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=business_tz())
    return dt.astimezone(business_tz())


def to_utc(dt: datetime) -> datetime:
    return to_local(dt).astimezone(timezone.utc)


def combine_local(d: date, t: time | None) -> datetime:
    return datetime.combine(d, t or time(0, 0), tzinfo=business_tz())


def split_local(dt: datetime) -> tuple[date, time]:
    local = to_local(dt)
    return local.date(), local.time().replace(tzinfo=None)
