"""Date parsing utilities"""

from datetime import date, datetime
from typing import Optional


def parse_calendar_date(value: str) -> Optional[date]:
    """Parse an ISO calendar date; full ISO datetimes are truncated to their date"""
    value = value.strip()
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        return None


def age_in_years(birth_date: date, today: date) -> int:
    """Completed years between birth_date and today"""
    years = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        years -= 1
    return years
