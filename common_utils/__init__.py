"""
Common utilities for the Campus Transit application
"""
from datetime import datetime, date, timezone, timedelta

IST_OFFSET = timedelta(hours=5, minutes=30)
IST_TZ = timezone(IST_OFFSET)


def get_current_ist_time():
    """
    Get current time in Indian Standard Time (IST, UTC+5:30)

    Returns:
        datetime: Current datetime in IST timezone
    """
    utc_now = datetime.now(timezone.utc)
    ist_now = utc_now + IST_OFFSET
    return ist_now.replace(tzinfo=IST_TZ)


def to_ist_naive(dt_val: datetime) -> datetime:
    """
    Normalise a datetime to naive IST wall time.

    Schedule deadlines are stored as naive IST wall time; aware values are
    converted first, naive values are assumed to already be IST.
    """
    if dt_val.tzinfo is None:
        return dt_val
    return dt_val.astimezone(IST_TZ).replace(tzinfo=None)


def get_ist_today(now: datetime = None) -> date:
    """Server date in IST, the date used for past-date checks"""
    return to_ist_naive(now or get_current_ist_time()).date()
