"""
Shared helpers for operational reports: date range parsing, range filters
and batched lookups of the rows a booking_rooms record points at
"""
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Tuple
from hotel_pms.database.models import fetch_by_ids
from hotel_pms.errors import ValidationError
from hotel_pms.services.date_utils import convert_date_format, parse_date


def parse_report_range(from_date: Optional[str], to_date: Optional[str]) -> Tuple[date, date]:
    if not from_date or not to_date:
        raise ValidationError('fromDate and toDate parameters are required')
    try:
        start = parse_date(convert_date_format(from_date))
        end = parse_date(convert_date_format(to_date))
    except ValueError:
        start = end = None
    if start is None or end is None:
        raise ValidationError('Invalid date format. Please use DD/MM/YYYY format')
    if start > end:
        raise ValidationError('fromDate cannot be after toDate')
    return start, end


def in_range(query, column: str, start: date, end: date):
    """Restrict a date or timestamp column to the whole days start..end"""
    return query.gte(column, start.isoformat()).lt(column, (end + timedelta(days=1)).isoformat())


def within(value, start: date, end: date) -> bool:
    day = parse_date(value)
    return day is not None and start <= day <= end


def total_pax(booking: Dict) -> int:
    return int(booking.get('number_of_guests') or 0) + int(booking.get('extra_guests') or 0) + \
        int(booking.get('child_guests') or 0)


def count_by(rows: Iterable[Dict], key: str) -> Dict[str, int]:
    counts = {}
    for row in rows:
        counts[row[key]] = counts.get(row[key], 0) + 1
    return counts


class StayContext:
    """
    The bookings, guests, rooms, room types, staff and payment breakdowns
    referenced by a set of booking_rooms rows, loaded with one query each.
    """

    def __init__(self, stays: List[Dict], bookings: Optional[Dict] = None):
        self.bookings = bookings if bookings is not None else \
            fetch_by_ids('bookings', [s.get('booking_id') for s in stays])
        self.rooms = fetch_by_ids('rooms', [s.get('room_id') for s in stays])
        self.room_types = fetch_by_ids('room_types', [r.get('room_type_id') for r in self.rooms.values()])
        self.guests = fetch_by_ids('guests', [b.get('guest_id') for b in self.bookings.values()])
        self.staff = fetch_by_ids('staff', [b.get('staff_id') for b in self.bookings.values()])
        self.breakdowns = fetch_by_ids(
            'booking_payment_breakdown', list(self.bookings), column='booking_id'
        )

    def booking(self, stay: Dict) -> Dict:
        return self.bookings.get(stay.get('booking_id')) or {}

    def room(self, stay: Dict) -> Dict:
        return self.rooms.get(stay.get('room_id')) or {}

    def room_number(self, stay: Dict, default='N/A'):
        return self.room(stay).get('number', default)

    def room_type(self, stay: Dict) -> Dict:
        return self.room_types.get(self.room(stay).get('room_type_id')) or {}

    def room_type_name(self, stay: Dict, default='N/A'):
        return self.room_type(stay).get('name', default)

    def guest(self, booking: Dict) -> Dict:
        return self.guests.get(booking.get('guest_id')) or {}

    def staff_name(self, booking: Dict, default='N/A'):
        return (self.staff.get(booking.get('staff_id')) or {}).get('name', default)

    def breakdown(self, booking: Dict) -> Dict:
        return self.breakdowns.get(booking.get('id')) or {}
