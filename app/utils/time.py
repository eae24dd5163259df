"""Time utilities (local budget timezone)."""

from calendar import monthrange
from datetime import date, datetime
from zoneinfo import ZoneInfo

from app.config import settings

LOCAL_TZ = ZoneInfo(settings.TIMEZONE)


def now_local_naive() -> datetime:
    """
    Current time in the budget timezone, returned as naive datetime for DB storage.
    """
    return datetime.now(LOCAL_TZ).replace(tzinfo=None)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last calendar day of a month."""
    last_day = monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)
