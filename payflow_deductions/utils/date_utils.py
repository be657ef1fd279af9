"""Date manipulation utilities"""

from datetime import date, datetime
from typing import Optional

from dateutil.relativedelta import relativedelta


def add_months(from_date: date, months: int) -> date:
    """Calendar-month addition; the day is clamped to the end of shorter months"""
    return from_date + relativedelta(months=months)


def parse_iso_date(value) -> Optional[date]:
    """Accept a date, datetime or ISO ``YYYY-MM-DD`` string; blank means no date"""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    return date.fromisoformat(text[:10])


def parse_iso_datetime(value) -> Optional[datetime]:
    if not value:
        return None
    # Python < 3.11 does not accept the trailing Z
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
