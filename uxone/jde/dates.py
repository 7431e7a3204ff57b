"""
JDE Julian dates

JDE stores dates as CYYDDD: C is the century offset from 1900, YY the year
within the century and DDD the day of the year. 125074 is 2025-03-15.
"""
from datetime import date, timedelta


def julian_to_date(value):
    """CYYDDD (int or str) -> date; None for empty, zero or malformed values"""
    if value in (None, ''):
        return None
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    if number <= 0:
        return None

    text = str(number).zfill(6)
    century = int(text[0:-5])
    year = 1900 + century * 100 + int(text[-5:-3])
    day_of_year = int(text[-3:])
    if day_of_year < 1:
        return None
    try:
        result = date(year, 1, 1) + timedelta(days=day_of_year - 1)
    except (ValueError, OverflowError):
        return None
    if result.year != year:
        return None
    return result


def julian_to_iso(value):
    result = julian_to_date(value)
    return result.isoformat() if result else None


def format_julian_date(value):
    """Display form, e.g. 'Mar 15, 2025'; 'N/A' when not a valid date"""
    result = julian_to_date(value)
    if not result:
        return 'N/A'
    return f"{result.strftime('%b')} {result.day}, {result.year}"


def date_to_julian(value):
    return (value.year - 1900) * 1000 + value.timetuple().tm_yday
