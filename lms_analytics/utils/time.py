import calendar
from datetime import date, datetime
from typing import Union

from lms_analytics.core.constants import TimeBucket

BUCKET_FORMATS = {
    TimeBucket.DAY: "%Y-%m-%d",
    TimeBucket.WEEK: "%G-W%V",
    TimeBucket.MONTH: "%Y-%m",
}


def bucket_key(timestamp: Union[datetime, date], granularity: TimeBucket) -> str:
    """Format ``timestamp`` as the key of its calendar bucket.

    Time of day never affects the key. Weeks are ISO weeks so a week that
    straddles new year keeps a single key.
    """
    return timestamp.strftime(BUCKET_FORMATS[TimeBucket(granularity)])


def subtract_months(value: datetime, months: int) -> datetime:
    """Shift ``value`` back by calendar months, clamping to the month's last day."""
    month_index = value.year * 12 + (value.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)
