"""Date parsing utilities."""

from datetime import date, timedelta
from typing import Optional
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

# Fiscal years run April to March
FISCAL_YEAR_START_MONTH = 4

PERIODS = ("this-month", "last-month", "this-year", "last-year", "this-fy", "last-fy")


def parse_date(date_str: str, today: Optional[date] = None) -> date:
    """Parse a date string into a date object.

    Supports absolute dates ("2024-04-01", "1 April 2024") and the relative
    words "today" and "yesterday". Day-first input such as "15/04/2024" is
    read as 15 April.

    Args:
        date_str: Date string
        today: Reference date for relative words (defaults to date.today())

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    text = date_str.strip().lower()
    today = today or date.today()

    if text == "today":
        return today
    if text == "yesterday":
        return today - timedelta(days=1)

    try:
        # ISO strings stay year-first, everything else is day-first
        return date_parser.parse(text, dayfirst=not text[:4].isdigit()).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def fiscal_year_start(day: date) -> date:
    """First day of the fiscal year containing a date."""
    year = day.year if day.month >= FISCAL_YEAR_START_MONTH else day.year - 1
    return date(year, FISCAL_YEAR_START_MONTH, 1)


def get_date_range(period: str, today: Optional[date] = None) -> tuple[date, date]:
    """Get the half-open [start, end) range of a named period.

    Current periods end tomorrow, so today is included.

    Args:
        period: One of this-month, last-month, this-year, last-year, this-fy, last-fy
        today: Reference date (defaults to date.today())

    Returns:
        Tuple of (start_date, end_date) where end_date is exclusive

    Raises:
        ValueError: If period string is not recognized
    """
    period = period.strip().lower()
    today = today or date.today()
    tomorrow = today + timedelta(days=1)

    if period == "this-month":
        return (today.replace(day=1), tomorrow)
    elif period == "last-month":
        start = today.replace(day=1) - relativedelta(months=1)
        return (start, today.replace(day=1))
    elif period == "this-year":
        return (today.replace(month=1, day=1), tomorrow)
    elif period == "last-year":
        start = today.replace(month=1, day=1) - relativedelta(years=1)
        return (start, today.replace(month=1, day=1))
    elif period == "this-fy":
        return (fiscal_year_start(today), tomorrow)
    elif period == "last-fy":
        end = fiscal_year_start(today)
        return (end - relativedelta(years=1), end)

    raise ValueError(f"Unknown period: '{period}'. Supported periods: {', '.join(PERIODS)}")
