"""
Room reports: occupancy, vacancy, blocked rooms, transfers and room-wise revenue
"""
import logging
from datetime import date, datetime, time, timedelta
from typing import Dict, Mapping
from hotel_pms.database.db import get_supabase
from hotel_pms.database.models import RoomModel, fetch_by_ids
from hotel_pms.reports.common import StayContext, in_range, total_pax, count_by
from hotel_pms.services.date_utils import date_range, parse_datetime

logger = logging.getLogger(__name__)


def _flag(args: Mapping, name: str) -> bool:
    return str(args.get(name, '')).lower() in ('1', 'true', 'yes')


def occupancy_analysis_report(start: date, end: date, args: Mapping) -> Dict:
    """Distinct occupied rooms per day over the whole inventory"""
    supabase = get_supabase()
    total_rooms = len(RoomModel.get_all())
    stays = supabase.table('booking_rooms').select('*').in_(
        'room_status', ['checked_in', 'checked_out']
    ).lte('check_in_date', end.isoformat()).gte('check_out_date', start.isoformat()).execute().data or []

    rows = []
    for day in date_range(start, end):
        day_start = datetime.combine(day, time.min)
        day_end = datetime.combine(day, time.max)
        occupied = set()
        for stay in stays:
            check_in = parse_datetime(stay.get('actual_check_in') or stay.get('check_in_date'))
            check_out = parse_datetime(stay.get('actual_check_out') or stay.get('check_out_date'))
            if check_in and check_out and check_in <= day_end and check_out >= day_start:
                occupied.add(stay['room_id'])
        percentage = round(len(occupied) / total_rooms * 100, 2) if total_rooms else 0
        rows.append({
            'date': day.isoformat(),
            'occupied_rooms': len(occupied),
            'total_rooms': total_rooms,
            'occupancy_percentage': percentage
        })

    average = round(sum(r['occupancy_percentage'] for r in rows) / len(rows), 2) if rows else 0
    return {
        'data': rows,
        'summary': {
            'average_occupancy': average,
            'period': f"{start.isoformat()} to {end.isoformat()}"
        }
    }


def occupancy_vacant_report(start: date, end: date, args: Mapping) -> Dict:
    include_mobile = _flag(args, 'includeMobileNumber')
    include_tariff = _flag(args, 'includeTariff')
    supabase = get_supabase()
    range_end = (end + timedelta(days=1)).isoformat()

    occupied_stays = supabase.table('booking_rooms').select('*').eq('room_status', 'checked_in').lt(
        'check_in_date', range_end
    ).gt('check_out_date', start.isoformat()).execute().data or []
    ctx = StayContext(occupied_stays)

    occupancy = []
    for stay in occupied_stays:
        booking = ctx.booking(stay)
        row = {
            's_no': len(occupancy) + 1,
            'room_number': ctx.room_number(stay),
            'room_type': ctx.room_type_name(stay),
            'guest_name': ctx.guest(booking).get('name', 'N/A'),
            'booking_number': booking.get('booking_number', 'N/A'),
            'pax': total_pax(booking),
            'check_in': stay.get('actual_check_in') or stay.get('check_in_date'),
            'check_out': stay.get('check_out_date')
        }
        if include_mobile:
            row['mobile_number'] = ctx.guest(booking).get('phone', 'N/A')
        if include_tariff:
            row['tariff'] = stay.get('room_rate') or 0
        occupancy.append(row)

    rooms = RoomModel.get_all()
    busy = supabase.table('booking_rooms').select('room_id').in_(
        'room_status', ['reserved', 'checked_in']
    ).lt('check_in_date', range_end).gt('check_out_date', start.isoformat()).execute().data or []
    busy_ids = {row['room_id'] for row in busy}

    vacant_by_type = {}
    for room in rooms:
        if room.get('status') != 'available' or room['id'] in busy_ids:
            continue
        type_name = (room.get('room_type') or {}).get('name', 'Unknown')
        group = vacant_by_type.setdefault(type_name, {'room_type': type_name, 'total_rooms': 0, 'room_numbers': []})
        group['total_rooms'] += 1
        group['room_numbers'].append(room['number'])
    vacant = []
    for group in vacant_by_type.values():
        group['room_numbers'].sort(key=str)
        group['room_numbers_str'] = ', '.join(str(n) for n in group['room_numbers'])
        vacant.append(group)

    blocked = [{
        's_no': index + 1,
        'room_number': room['number'],
        'room_type': (room.get('room_type') or {}).get('name', 'Unknown'),
        'blocked_on': room.get('updated_at')
    } for index, room in enumerate(r for r in rooms if r.get('status') == 'blocked')]

    return {
        'success': True,
        'data': {
            'occupancy': occupancy,
            'vacant': vacant,
            'blocked': blocked,
            'metrics': {
                'occupancy': {
                    'number_of_rooms': len(occupancy),
                    'total_pax': sum(r['pax'] for r in occupancy)
                },
                'vacant': {
                    'number_of_vacant': sum(g['total_rooms'] for g in vacant),
                    'maintenance': len([r for r in rooms if r.get('status') == 'maintenance'])
                }
            }
        }
    }


def blocked_rooms_report(start: date, end: date, args: Mapping) -> Dict:
    supabase = get_supabase()
    blocks = in_range(
        supabase.table('blocked_rooms').select('*'), 'blocked_date', start, end
    ).order('blocked_date', desc=True).execute().data or []
    rooms = fetch_by_ids('rooms', [b.get('room_id') for b in blocks])
    room_types = fetch_by_ids('room_types', [r.get('room_type_id') for r in rooms.values()])
    staff = fetch_by_ids('staff', [b.get('blocked_by_staff_id') for b in blocks] +
                         [b.get('unblocked_by_staff_id') for b in blocks])

    rows = []
    for index, block in enumerate(blocks):
        room = rooms.get(block.get('room_id')) or {}
        unblocked_by = staff.get(block.get('unblocked_by_staff_id'))
        rows.append({
            'id': block['id'],
            's_no': index + 1,
            'room_number': room.get('number', 'Unknown'),
            'room_type': (room_types.get(room.get('room_type_id')) or {}).get('name', 'Unknown'),
            'blocked_date': block.get('blocked_date'),
            'room_status': 'Blocked' if block.get('is_active') else 'Unblocked',
            'blocked_from': block.get('blocked_from_date'),
            'blocked_to': block.get('blocked_to_date'),
            'reason': block.get('reason') or 'No reason provided',
            'staff_blocked_by': (staff.get(block.get('blocked_by_staff_id')) or {}).get('name', 'Unknown Staff'),
            'unblocked_date': block.get('unblocked_date'),
            'unblocked_by': unblocked_by['name'] if unblocked_by else None,
            'unblock_reason': block.get('unblock_reason'),
            'notes': block.get('notes')
        })

    summary = {
        'total_blocked': len(rows),
        'currently_blocked': len([r for r in rows if r['room_status'] == 'Blocked']),
        'unblocked': len([r for r in rows if r['room_status'] == 'Unblocked']),
        'blocked_by_staff': count_by(rows, 'staff_blocked_by'),
        'blocked_by_reason': count_by(rows, 'reason')
    }
    return {'success': True, 'data': rows, 'summary': summary}


def rooms_transfers_report(start: date, end: date, args: Mapping) -> Dict:
    supabase = get_supabase()
    transfers = in_range(
        supabase.table('room_transfers').select('*'), 'transfer_date', start, end
    ).order('transfer_date', desc=True).execute().data or []
    bookings = fetch_by_ids('bookings', [t.get('booking_id') for t in transfers])
    guests = fetch_by_ids('guests', [b.get('guest_id') for b in bookings.values()])
    rooms = fetch_by_ids('rooms', [t.get('from_room_id') for t in transfers] + [t.get('to_room_id') for t in transfers])
    staff = fetch_by_ids('staff', [t.get('transfer_staff_id') for t in transfers])

    rows = []
    for index, transfer in enumerate(transfers):
        booking = bookings.get(transfer.get('booking_id')) or {}
        rows.append({
            'id': transfer['id'],
            's_no': index + 1,
            'booking_number': booking.get('booking_number', 'N/A'),
            'guest_name': (guests.get(booking.get('guest_id')) or {}).get('name', 'N/A'),
            'from_room': (rooms.get(transfer.get('from_room_id')) or {}).get('number', 'N/A'),
            'to_room': (rooms.get(transfer.get('to_room_id')) or {}).get('number', 'N/A'),
            'transfer_date': transfer.get('transfer_date'),
            'reason': transfer.get('reason') or 'Other',
            'transfer_by': (staff.get(transfer.get('transfer_staff_id')) or {}).get('name', 'Unknown Staff'),
            'status': transfer.get('status') or 'completed'
        })
    return {'success': True, 'data': rows, 'total': len(rows)}


def roomwise_report(start: date, end: date, args: Mapping) -> Dict:
    """Room revenue and number of stays per room for legs created in the period"""
    supabase = get_supabase()
    stays = in_range(supabase.table('booking_rooms').select('*'), 'created_at', start, end).execute().data or []
    ctx = StayContext(stays, bookings={})

    by_room = {}
    for stay in stays:
        entry = by_room.setdefault(stay['room_id'], {
            'room': ctx.room_number(stay),
            'room_type': ctx.room_type_name(stay),
            'revenue': 0.0,
            'stays': 0
        })
        entry['revenue'] += float(stay.get('room_total') or 0)
        entry['stays'] += 1

    rows = sorted(by_room.values(), key=lambda r: str(r['room']))
    return {
        'total_rooms': len(rows),
        'data': rows,
        'summary': {
            'total_revenue': sum(r['revenue'] for r in rows),
            'total_stays': sum(r['stays'] for r in rows)
        }
    }
