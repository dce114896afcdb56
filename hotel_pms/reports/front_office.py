"""
Front office reports: arrivals, police register, food plan, foreigners,
expected checkouts, check-in/checkout register, early/late stays,
complimentary and cancelled bookings
"""
import logging
from datetime import date
from typing import Dict, List, Mapping
from hotel_pms.database.db import get_supabase
from hotel_pms.database.models import MealPlanModel, fetch_by_ids, fetch_grouped
from hotel_pms.errors import ValidationError
from hotel_pms.reports.common import StayContext, in_range, within, total_pax, count_by
from hotel_pms.services.billing import sum_advances, sum_receipts
from hotel_pms.services.date_utils import parse_datetime, get_days_difference

logger = logging.getLogger(__name__)

ROOM_TYPE_CODES = ['deluxe', 'deluxe_triple', 'deluxe_quad', 'king_suite', 'residential_suite']
SPECIAL_STATUSES = ('cancelled', 'no_show', 'pending')


def stay_dates(stay: Dict) -> Dict:
    return {
        'room_check_in': stay.get('check_in_date'),
        'room_check_out': stay.get('check_out_date'),
        'room_actual_check_in': stay.get('actual_check_in'),
        'room_actual_check_out': stay.get('actual_check_out'),
        'room_status': stay.get('room_status')
    }


def arrival_report(start: date, end: date, args: Mapping) -> Dict:
    """One row per booking that arrived in the period, with room-type counts"""
    supabase = get_supabase()
    query = supabase.table('booking_rooms').select('*').in_('room_status', ['checked_in', 'reserved'])
    stays = in_range(query, 'actual_check_in', start, end).order('actual_check_in', desc=True).execute().data or []
    ctx = StayContext(stays)

    by_booking = {}
    for stay in stays:
        booking = ctx.booking(stay)
        if not booking:
            continue
        record = by_booking.get(booking['id'])
        if record is None:
            breakdown = ctx.breakdown(booking)
            record = {
                'id': booking['id'],
                'booking_number': booking.get('booking_number'),
                'guest_name': ctx.guest(booking).get('name', 'N/A'),
                'arrival_type': booking.get('arrival_type') or 'N/A',
                'ota_company': booking.get('ota_company') or 'N/A',
                'arrival_date': stay.get('actual_check_in') or stay.get('check_in_date'),
                'departure_time': stay.get('actual_check_out') or stay.get('check_out_date'),
                'planned_nights': 0,
                'pax': booking.get('number_of_guests') or 0,
                'child_pax': booking.get('child_guests') or 0,
                'total_rooms': 0,
                'meal_plan': booking.get('meal_plan') or 'EP',
                'advance_paid': sum_advances(breakdown),
                'total_amount': breakdown.get('total_amount') or 0,
                'outstanding_amount': breakdown.get('outstanding_amount') or 0,
                'booking_staff_name': ctx.staff_name(booking),
                'booked_on': booking.get('booked_on')
            }
            record.update({f"{code}_count": 0 for code in ROOM_TYPE_CODES})
            by_booking[booking['id']] = record

        if stay.get('check_in_date') and stay.get('check_out_date'):
            record['planned_nights'] = max(
                record['planned_nights'],
                get_days_difference(stay['check_in_date'], stay['check_out_date'])
            )
        record['total_rooms'] += 1
        code = (ctx.room_type(stay).get('code') or '').lower()
        if f"{code}_count" in record:
            record[f"{code}_count"] += 1

    data = list(by_booking.values())
    return {'total': len(data), 'data': data}


def police_report(start: date, end: date, args: Mapping) -> Dict:
    status = args.get('status')
    if status not in ('checked_in', 'checked_out'):
        raise ValidationError('Invalid status parameter. Must be "checked_in" or "checked_out"')

    supabase = get_supabase()
    query = supabase.table('booking_rooms').select('*')
    if status == 'checked_in':
        query = in_range(query.eq('room_status', 'checked_in'), 'actual_check_in', start, end)
        stays = query.order('actual_check_in', desc=True).execute().data or []
    else:
        stays = in_range(query, 'actual_check_out', start, end).order('actual_check_out', desc=True).execute().data or []
    ctx = StayContext(stays)

    rows = []
    for stay in stays:
        booking = ctx.booking(stay)
        guest = ctx.guest(booking) or {'name': 'Unknown Guest'}
        rows.append({
            'id': f"{booking.get('id', 'unknown')}_{stay['id']}",
            'booking_id': booking.get('id'),
            's_no': len(rows) + 1,
            'room_number': ctx.room_number(stay, 'Unknown'),
            'room_type': ctx.room_type_name(stay, 'Unknown'),
            'guest_name': guest.get('name', 'Unknown Guest'),
            'phone': guest.get('phone'),
            'address': guest.get('address'),
            'nationality': guest.get('nationality'),
            'id_type': guest.get('id_type'),
            'id_number': guest.get('id_number'),
            'total_pax': total_pax(booking),
            'purpose': booking.get('purpose') or 'Not specified',
            'check_in_time': stay.get('actual_check_in') or stay.get('check_in_date'),
            'check_out_time': stay.get('actual_check_out') or stay.get('check_out_date'),
            'booking_number': booking.get('booking_number', 'N/A'),
            **stay_dates(stay)
        })
    return {'success': True, 'status': status, 'total': len(rows), 'data': rows}


def food_plan_report(start: date, end: date, args: Mapping) -> Dict:
    """Checked-in guests per meal plan; pax totals weighted per plan"""
    meal_plan = args.get('mealPlan')
    supabase = get_supabase()
    query = supabase.table('booking_rooms').select('*').eq('room_status', 'checked_in')
    if meal_plan and meal_plan != 'all':
        plan = MealPlanModel.find_by_name(meal_plan)
        if not plan:
            return {'success': True, 'data': [], 'summary': {'total_guests': 0, 'meal_plans': {}}}
        query = query.eq('meal_plan_id', plan['id'])
    stays = in_range(query, 'actual_check_in', start, end).order('actual_check_in', desc=True).execute().data or []
    ctx = StayContext(stays)
    plans = fetch_by_ids('meal_plans', [s.get('meal_plan_id') for s in stays])

    rows = []
    for stay in stays:
        booking = ctx.booking(stay)
        plan_name = (plans.get(stay.get('meal_plan_id')) or {}).get('name') or booking.get('meal_plan') or 'EP'
        rows.append({
            'id': f"{booking.get('id', 'unknown')}_{stay['id']}",
            'booking_id': booking.get('id'),
            's_no': len(rows) + 1,
            'room_number': ctx.room_number(stay, 'Unknown'),
            'room_type': ctx.room_type_name(stay, 'Unknown'),
            'booking_number': booking.get('booking_number', 'N/A'),
            'guest_name': ctx.guest(booking).get('name', 'Unknown Guest'),
            'checkin_date': stay.get('actual_check_in') or stay.get('check_in_date'),
            'expected_checkout': stay.get('check_out_date'),
            'meal_plan': plan_name,
            'pax': booking.get('number_of_guests') or 0,
            'extra_pax': booking.get('extra_guests') or 0,
            'children': booking.get('child_guests') or 0,
            'total_pax': total_pax(booking),
            **stay_dates(stay)
        })

    summary = {'total_guests': sum(r['total_pax'] for r in rows), 'meal_plans': {}}
    for row in rows:
        summary['meal_plans'][row['meal_plan']] = summary['meal_plans'].get(row['meal_plan'], 0) + row['total_pax']
    return {'success': True, 'data': rows, 'summary': summary}


def foreigner_report(start: date, end: date, args: Mapping) -> Dict:
    """Stays touching the period whose guest nationality is not Indian"""
    supabase = get_supabase()
    candidates = supabase.table('booking_rooms').select('*').lte(
        'check_in_date', end.isoformat()
    ).gte('check_out_date', start.isoformat()).execute().data or []
    stays = [s for s in candidates if any(
        within(s.get(column), start, end)
        for column in ('actual_check_in', 'actual_check_out', 'check_in_date', 'check_out_date')
    )]
    stays.sort(key=lambda s: s.get('actual_check_in') or '', reverse=True)
    ctx = StayContext(stays)

    rows = []
    for stay in stays:
        booking = ctx.booking(stay)
        guest = ctx.guest(booking)
        nationality = (guest.get('nationality') or '').strip()
        if not nationality or nationality.lower() == 'indian':
            continue
        rows.append({
            's_no': len(rows) + 1,
            'booking_id': stay.get('booking_id'),
            'room_number': ctx.room_number(stay),
            'room_type': ctx.room_type_name(stay),
            'status': booking.get('status', 'N/A'),
            'guest_name': guest.get('name', 'N/A'),
            'nationality': nationality,
            'contact_number': guest.get('phone') or 'N/A',
            'passport_number': guest.get('passport_number') or '',
            'arrival_from': guest.get('arrival_from') or '',
            'arrival_mode': booking.get('arrival_type') or '',
            'actual_arrival_date': stay.get('actual_check_in'),
            'actual_check_out_date': stay.get('actual_check_out')
        })
    return {'success': True, 'total': len(rows), 'data': rows}


def expected_checkout_report(start: date, end: date, args: Mapping) -> Dict:
    supabase = get_supabase()
    query = supabase.table('booking_rooms').select('*').eq('room_status', 'checked_in').is_('actual_check_out', 'null')
    stays = in_range(query, 'check_out_date', start, end).order('check_out_date').execute().data or []
    ctx = StayContext(stays)

    rows = []
    for stay in stays:
        booking = ctx.booking(stay)
        guest = ctx.guest(booking)
        rows.append({
            'id': f"{booking.get('id', 'unknown')}_{stay['id']}",
            'booking_id': booking.get('id'),
            'booking_number': booking.get('booking_number', 'N/A'),
            'checkin_date': stay.get('actual_check_in') or stay.get('check_in_date'),
            'expected_checkout': stay.get('check_out_date'),
            'planned_nights': booking.get('planned_nights'),
            'number_of_guests': booking.get('number_of_guests'),
            'child_guests': booking.get('child_guests'),
            'extra_guests': booking.get('extra_guests'),
            'status': booking.get('status', 'checked_in'),
            'arrival_type': booking.get('arrival_type'),
            'ota_company': booking.get('ota_company'),
            'guest_name': guest.get('name', 'N/A'),
            'guest_phone': guest.get('phone', 'N/A'),
            'room_number': ctx.room_number(stay),
            'room_type': ctx.room_type_name(stay),
            'staff_name': ctx.staff_name(booking),
            **stay_dates(stay)
        })
    return {'total': len(rows), 'data': rows}


def group_by_status(rows: List[Dict]) -> Dict:
    return {
        'total': len(rows),
        'primary': [r for r in rows if r['status'] not in SPECIAL_STATUSES],
        'cancelled': [r for r in rows if r['status'] == 'cancelled'],
        'no_show': [r for r in rows if r['status'] == 'no_show'],
        'pending': [r for r in rows if r['status'] == 'pending']
    }


def _register_rows(stays: List[Dict], moment_column: str, date_column: str) -> List[Dict]:
    stays = sorted(stays, key=lambda s: str(s.get(moment_column) or s.get(date_column) or ''), reverse=True)
    ctx = StayContext(stays)
    rows = []
    for stay in stays:
        booking = ctx.booking(stay)
        if not booking:
            continue
        breakdown = ctx.breakdown(booking)
        guest = ctx.guest(booking)
        rows.append({
            'id': f"{booking['id']}_{stay['id']}",
            'booking_id': booking['id'],
            'booking_number': booking.get('booking_number'),
            'status': booking.get('status'),
            'arrival_type': booking.get('arrival_type'),
            'company_ota_agent': booking.get('ota_company') or 'N/A',
            'planned_nights': booking.get('planned_nights'),
            'number_of_guests': booking.get('number_of_guests'),
            'child_guests': booking.get('child_guests'),
            'extra_guests': booking.get('extra_guests'),
            'bill_number': booking.get('bill_number'),
            'booked_on': booking.get('booked_on'),
            'checkout_notes': booking.get('checkout_notes'),
            'advance_cash': breakdown.get('advance_cash') or 0,
            'advance_card': breakdown.get('advance_card') or 0,
            'advance_upi': breakdown.get('advance_upi') or 0,
            'advance_bank': breakdown.get('advance_bank') or 0,
            'advance_total': sum_advances(breakdown),
            'receipt_cash': breakdown.get('receipt_cash') or 0,
            'receipt_card': breakdown.get('receipt_card') or 0,
            'receipt_upi': breakdown.get('receipt_upi') or 0,
            'receipt_bank': breakdown.get('receipt_bank') or 0,
            'receipt_total': sum_receipts(breakdown),
            'total_amount': breakdown.get('total_amount') or 0,
            'outstanding_amount': breakdown.get('outstanding_amount') or 0,
            'price_adjustment': breakdown.get('price_adjustment') or 0,
            'full_payment': float(breakdown.get('taxed_total_amount') or breakdown.get('total_amount') or 0),
            'guest_name': guest.get('name', 'N/A'),
            'guest_phone': guest.get('phone', 'N/A'),
            'room_number': ctx.room_number(stay),
            'room_type': ctx.room_type_name(stay),
            'staff_name': ctx.staff_name(booking),
            **stay_dates(stay)
        })
    return rows


def fetch_checkin_rows(start: date, end: date) -> List[Dict]:
    """Actual check-ins in the period plus scheduled arrivals not yet checked in"""
    supabase = get_supabase()
    actual = in_range(supabase.table('booking_rooms').select('*'), 'actual_check_in', start, end).execute().data or []
    scheduled = in_range(
        supabase.table('booking_rooms').select('*').is_('actual_check_in', 'null'), 'check_in_date', start, end
    ).execute().data or []
    rows = _register_rows(actual + scheduled, 'actual_check_in', 'check_in_date')
    for row in rows:
        row['checkin_time'] = row['room_actual_check_in'] or row['room_check_in']
        row['expected_checkout'] = row['room_check_out']
    return rows


def fetch_checkout_rows(start: date, end: date) -> List[Dict]:
    """Actual checkouts in the period plus scheduled departures not yet checked out"""
    supabase = get_supabase()
    actual = in_range(supabase.table('booking_rooms').select('*'), 'actual_check_out', start, end).execute().data or []
    scheduled = in_range(
        supabase.table('booking_rooms').select('*').is_('actual_check_out', 'null'), 'check_out_date', start, end
    ).execute().data or []
    rows = _register_rows(actual + scheduled, 'actual_check_out', 'check_out_date')
    for row in rows:
        row['checkout_time'] = row['room_actual_check_out'] or row['room_check_out']
    return rows


def checkin_checkout_report(start: date, end: date, args: Mapping) -> Dict:
    return {
        'checkins': group_by_status(fetch_checkin_rows(start, end)),
        'checkouts': group_by_status(fetch_checkout_rows(start, end))
    }


def early_checkin_late_checkout_report(start: date, end: date, args: Mapping) -> Dict:
    """Arrivals more than two hours before, and departures more than two hours after, plan"""
    supabase = get_supabase()
    arrived = in_range(supabase.table('booking_rooms').select('*'), 'actual_check_in', start, end).execute().data or []
    departed = in_range(supabase.table('booking_rooms').select('*'), 'actual_check_out', start, end).execute().data or []
    stays = list({s['id']: s for s in arrived + departed}.values())
    stays.sort(key=lambda s: s.get('actual_check_in') or '')
    ctx = StayContext(stays)

    rows = []
    for stay in stays:
        booking = ctx.booking(stay)
        guest = ctx.guest(booking)
        if not booking or not guest:
            continue
        base = {
            'booking_number': booking.get('booking_number'),
            'guest_name': guest.get('name'),
            'guest_phone': guest.get('phone'),
            'room_number': ctx.room_number(stay),
            'room_type': ctx.room_type_name(stay, 'Unknown'),
            'status': booking.get('status'),
            'staff_name': ctx.staff_name(booking, 'Unknown')
        }

        actual_in = parse_datetime(stay.get('actual_check_in'))
        planned_in = parse_datetime(stay.get('check_in_date'))
        if actual_in and planned_in and within(actual_in, start, end):
            hours = (actual_in - planned_in).total_seconds() / 3600
            if hours < -2:
                rows.append({
                    **base,
                    'id': f"{booking['id']}-{stay['id']}-early-checkin",
                    'checkin_time': stay['actual_check_in'],
                    'checkout_time': None,
                    'planned_checkin': stay['check_in_date'],
                    'planned_checkout': None,
                    'checkin_difference_hours': round(hours, 2),
                    'checkout_difference_hours': 0,
                    'type': 'early_checkin'
                })

        actual_out = parse_datetime(stay.get('actual_check_out'))
        planned_out = parse_datetime(stay.get('check_out_date'))
        if actual_out and planned_out and within(actual_out, start, end):
            hours = (actual_out - planned_out).total_seconds() / 3600
            if hours > 2:
                rows.append({
                    **base,
                    'id': f"{booking['id']}-{stay['id']}-late-checkout",
                    'checkin_time': None,
                    'checkout_time': stay['actual_check_out'],
                    'planned_checkin': None,
                    'planned_checkout': stay['check_out_date'],
                    'checkin_difference_hours': 0,
                    'checkout_difference_hours': round(hours, 2),
                    'type': 'late_checkout'
                })

    return {
        'total': len(rows),
        'data': rows,
        'summary': {
            'early_checkins': len([r for r in rows if r['type'] == 'early_checkin']),
            'late_checkouts': len([r for r in rows if r['type'] == 'late_checkout']),
            'total_difference_hours': round(sum(
                abs(r['checkin_difference_hours'] or r['checkout_difference_hours']) for r in rows
            ), 2)
        }
    }


def complimentary_checkin_report(start: date, end: date, args: Mapping) -> Dict:
    supabase = get_supabase()
    candidates = in_range(supabase.table('bookings').select('*'), 'created_at', start, end).execute().data or []
    bookings = {b['id']: b for b in candidates if b.get('complimentary_reason')}
    legs = fetch_grouped('booking_rooms', 'booking_id', list(bookings))
    first_legs = [sorted(rows, key=lambda s: s.get('check_in_date') or '')[0] for rows in legs.values()]
    ctx = StayContext(first_legs, bookings=bookings)

    rows = []
    for stay in first_legs:
        booking = ctx.booking(stay)
        guest = ctx.guest(booking)
        if not guest or not ctx.room(stay):
            continue
        breakdown = ctx.breakdown(booking)
        approved_by = booking.get('complimentary_approved_by')
        rows.append({
            'id': booking['id'],
            'booking_number': booking.get('booking_number'),
            'guest_name': guest.get('name'),
            'guest_phone': guest.get('phone'),
            'room_number': ctx.room_number(stay),
            'room_type': ctx.room_type_name(stay, 'Unknown'),
            'checkin_time': stay.get('actual_check_in') or stay.get('check_in_date'),
            'checkout_time': stay.get('actual_check_out') or stay.get('check_out_date'),
            'planned_nights': stay.get('expected_nights') or 1,
            'complimentary_reason': booking.get('complimentary_reason'),
            'approved_by': approved_by or 'Pending',
            'approved_date': booking.get('complimentary_approved_date') or booking.get('created_at'),
            'status': 'approved' if approved_by else 'pending',
            'staff_name': ctx.staff_name(booking, 'Unknown'),
            'total_value': float(breakdown.get('taxed_total_amount') or breakdown.get('total_amount') or 0)
        })

    return {
        'total': len(rows),
        'data': rows,
        'summary': {
            'total_value': sum(r['total_value'] for r in rows),
            'approved_count': len([r for r in rows if r['status'] == 'approved']),
            'pending_count': len([r for r in rows if r['status'] == 'pending'])
        }
    }


def cancelled_checkin_report(start: date, end: date, args: Mapping) -> Dict:
    supabase = get_supabase()
    cancellations = in_range(
        supabase.table('cancelled_bookings').select('*'), 'cancel_date', start, end
    ).order('cancel_date', desc=True).execute().data or []
    bookings = fetch_by_ids('bookings', [c.get('booking_id') for c in cancellations])
    legs = fetch_grouped('booking_rooms', 'booking_id', list(bookings))
    rooms = fetch_by_ids('rooms', [leg['room_id'] for rows in legs.values() for leg in rows])
    room_types = fetch_by_ids('room_types', [r.get('room_type_id') for r in rooms.values()])
    staff = fetch_by_ids('staff', [c.get('cancelled_by_staff_id') for c in cancellations])

    rows = []
    for index, cancellation in enumerate(cancellations):
        booking = bookings.get(cancellation.get('booking_id')) or {}
        booking_legs = legs.get(booking.get('id'), [])
        first_leg = booking_legs[0] if booking_legs else None
        if first_leg:
            nights = get_days_difference(first_leg['check_in_date'], first_leg['check_out_date'])
        else:
            nights = booking.get('planned_nights') or 0
        cancelled_by = staff.get(cancellation.get('cancelled_by_staff_id')) or {}
        rows.append({
            'id': cancellation['id'],
            's_no': index + 1,
            'booking_id': booking.get('booking_number', 'Unknown'),
            'number_of_rooms': len(booking_legs),
            'expected_checkin_date': first_leg['check_in_date'] if first_leg else None,
            'expected_checkout_date': first_leg['check_out_date'] if first_leg else None,
            'number_of_nights': nights,
            'cancellation_reason': cancellation.get('cancellation_reason') or 'No reason provided',
            'cancel_date': cancellation.get('cancel_date'),
            'staff_name': cancelled_by.get('name', 'Unknown Staff'),
            'staff_id': cancelled_by.get('id'),
            'refund_amount': cancellation.get('refund_amount') or 0,
            'refund_processed': bool(cancellation.get('refund_processed')),
            'refund_processed_date': cancellation.get('refund_processed_date'),
            'cancellation_notes': cancellation.get('notes'),
            'rooms': [{
                'room_number': (rooms.get(leg['room_id']) or {}).get('number', 'Unknown'),
                'room_type': (room_types.get((rooms.get(leg['room_id']) or {}).get('room_type_id')) or {}).get(
                    'name', 'Unknown'
                )
            } for leg in booking_legs]
        })

    summary = {
        'total_cancelled': len(rows),
        'total_rooms_cancelled': sum(r['number_of_rooms'] for r in rows),
        'total_nights_cancelled': sum(r['number_of_nights'] for r in rows),
        'total_refund_amount': sum(float(r['refund_amount']) for r in rows),
        'refunds_processed': len([r for r in rows if r['refund_processed']]),
        'refunds_pending': len([r for r in rows if not r['refund_processed']]),
        'cancellation_reasons': count_by(rows, 'cancellation_reason'),
        'cancelled_by_staff': count_by(rows, 'staff_name')
    }
    return {'success': True, 'data': rows, 'summary': summary}
