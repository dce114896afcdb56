"""
Date helpers shared by bookings, checkout and reports.

Dates arrive as ``YYYY-MM-DD``, ``DD/MM/YYYY`` or ISO datetimes; all
comparisons that decide overlap are made at day level.
"""
import math
from datetime import datetime, date, time, timedelta
from typing import List, Optional, Union

DateLike = Union[str, date, datetime, None]

MAX_STAY_DAYS = 30


def parse_datetime(value: DateLike) -> Optional[datetime]:
    """Parse a date or datetime value; returns None when it cannot be parsed"""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)

    text = str(value).strip()
    if '/' in text:
        try:
            day, month, year = text.split('/')
            return datetime(int(year), int(month), int(day))
        except ValueError:
            return None
    try:
        parsed = datetime.fromisoformat(text.replace('Z', '+00:00'))
    except ValueError:
        return None
    return parsed.replace(tzinfo=None)


def parse_date(value: DateLike) -> Optional[date]:
    parsed = parse_datetime(value)
    return parsed.date() if parsed else None


def convert_date_format(value: Optional[str]) -> str:
    """DD/MM/YYYY -> YYYY-MM-DD; ISO input is returned unchanged"""
    if not value:
        return ''
    if '-' in value:
        return value
    day, month, year = value.split('/')
    return f"{year}-{month.zfill(2)}-{day.zfill(2)}"


def format_date_for_database(value: DateLike) -> Optional[str]:
    parsed = parse_date(value)
    return parsed.isoformat() if parsed else None


def is_date_in_past(value: DateLike) -> bool:
    parsed = parse_date(value)
    return parsed is not None and parsed < date.today()


def is_date_today(value: DateLike) -> bool:
    return parse_date(value) == date.today()


def get_days_difference(start: DateLike, end: DateLike) -> int:
    """Whole days between two moments, rounded up"""
    start_dt = parse_datetime(start)
    end_dt = parse_datetime(end)
    if start_dt is None or end_dt is None:
        return 0
    return math.ceil((end_dt - start_dt).total_seconds() / 86400)


def do_dates_overlap(start1: DateLike, end1: DateLike, start2: DateLike, end2: DateLike) -> bool:
    """Half-open day ranges; a stay ending on the day another begins does not overlap"""
    s1, e1, s2, e2 = (parse_date(v) for v in (start1, end1, start2, end2))
    if None in (s1, e1, s2, e2):
        return False
    return s1 < e2 and s2 < e1


def parse_clock(value) -> Optional[time]:
    """``HH:MM`` or ``HH:MM:SS`` on an unspecified day"""
    if isinstance(value, time):
        return value
    try:
        return time.fromisoformat(str(value).strip())
    except ValueError:
        return None


def do_times_overlap(start1, end1, start2, end2) -> bool:
    """Overlap of two same-day clock ranges, or of two full datetime ranges"""
    clocks = [parse_clock(v) if isinstance(v, (str, time)) else None for v in (start1, end1, start2, end2)]
    if None not in clocks:
        s1, e1, s2, e2 = clocks
        return s1 < e2 and s2 < e1
    s1, e1, s2, e2 = (parse_datetime(v) for v in (start1, end1, start2, end2))
    if None in (s1, e1, s2, e2):
        return False
    return s1 < e2 and s2 < e1


def validate_booking_dates(check_in: DateLike, check_out: DateLike, allow_past: bool = False) -> List[str]:
    errors = []
    start = parse_date(check_in)
    end = parse_date(check_out)
    if start is None or end is None:
        return ['Invalid date format']
    if not allow_past and start < date.today():
        errors.append('Check-in date cannot be in the past')
    if end < start:
        errors.append('Check-out date cannot be before check-in date')
    if (end - start).days > MAX_STAY_DAYS:
        errors.append(f'Stay duration cannot exceed {MAX_STAY_DAYS} days')
    return errors


def date_range(start: date, end: date) -> List[date]:
    days = []
    current = start
    while current <= end:
        days.append(current)
        current += timedelta(days=1)
    return days
