"""
Revenue reports: collections, sales day book, high balances, sales and day settlement
"""
import logging
from datetime import date
from typing import Dict, Mapping, Optional
from hotel_pms.database.db import get_supabase
from hotel_pms.database.models import RoomModel, fetch_by_ids, fetch_grouped
from hotel_pms.errors import ValidationError
from hotel_pms.reports.common import in_range
from hotel_pms.services.billing import PAYMENT_METHODS, sum_advances, sum_receipts
from hotel_pms.services.date_utils import date_range

logger = logging.getLogger(__name__)

DEFAULT_BALANCE_THRESHOLD = 5000


def _period(start: date, end: date) -> str:
    return f"{start.strftime('%d/%m/%Y')} to {end.strftime('%d/%m/%Y')}"


def _transactions(start: date, end: date):
    supabase = get_supabase()
    return in_range(supabase.table('payment_transactions').select('*'), 'created_at', start, end)


def collection_report(start: date, end: date, args: Mapping) -> Dict:
    transactions = _transactions(start, end).execute().data or []
    by_method = {}
    total = 0.0
    for transaction in transactions:
        amount = float(transaction.get('amount') or 0)
        total += amount
        method = transaction.get('payment_method') or 'unknown'
        by_method[method] = by_method.get(method, 0) + amount
    return {
        'total_transactions': len(transactions),
        'total_amount': total,
        'by_method': by_method,
        'data': transactions,
        'summary': {'period': _period(start, end)}
    }


def sales_day_book_report(start: date, end: date, args: Mapping) -> Dict:
    transactions = _transactions(start, end).order('created_at').execute().data or []
    return {
        'total_transactions': len(transactions),
        'data': transactions,
        'summary': {'period': _period(start, end)}
    }


def high_balance_report(start: Optional[date], end: Optional[date], args: Mapping) -> Dict:
    """Bookings whose outstanding balance is above ``threshold``; the date range is optional"""
    try:
        threshold = float(args.get('threshold') or DEFAULT_BALANCE_THRESHOLD)
    except (TypeError, ValueError):
        raise ValidationError('Invalid threshold')

    supabase = get_supabase()
    breakdowns = supabase.table('booking_payment_breakdown').select('*').gt(
        'outstanding_amount', threshold
    ).order('outstanding_amount', desc=True).execute().data or []
    bookings = fetch_by_ids('bookings', [b.get('booking_id') for b in breakdowns])
    guests = fetch_by_ids('guests', [b.get('guest_id') for b in bookings.values()])

    rows = []
    for breakdown in breakdowns:
        booking = bookings.get(breakdown.get('booking_id')) or {}
        if start and end:
            created = (booking.get('created_at') or '')[:10]
            if not (start.isoformat() <= created <= end.isoformat()):
                continue
        guest = guests.get(booking.get('guest_id')) or {}
        rows.append({
            'booking_id': breakdown.get('booking_id'),
            'booking_number': booking.get('booking_number'),
            'guest_name': guest.get('name'),
            'guest_phone': guest.get('phone'),
            'total_amount': float(breakdown.get('taxed_total_amount') or breakdown.get('total_amount') or 0),
            'outstanding_amount': float(breakdown.get('outstanding_amount') or 0)
        })
    return {'total': len(rows), 'data': rows, 'summary': {'threshold': threshold}}


def sales_report(start: date, end: date, args: Mapping) -> Dict:
    supabase = get_supabase()
    bookings = in_range(supabase.table('bookings').select('*'), 'created_at', start, end).execute().data or []
    breakdowns = fetch_by_ids('booking_payment_breakdown', [b['id'] for b in bookings], column='booking_id')

    gross = 0.0
    receipts = 0.0
    rows = []
    for booking in bookings:
        breakdown = breakdowns.get(booking['id']) or {}
        sale = float(breakdown.get('taxed_total_amount') or breakdown.get('total_amount') or 0)
        received = sum_receipts(breakdown)
        gross += sale
        receipts += received
        rows.append({
            'id': booking['id'],
            'booking_number': booking.get('booking_number'),
            'created_at': booking.get('created_at'),
            'gross_amount': sale,
            'receipts': received
        })
    return {
        'total_bookings': len(bookings),
        'gross_sales': gross,
        'total_receipts': receipts,
        'data': rows,
        'summary': {'period': _period(start, end)}
    }


def day_settlement_report(start: date, end: date, args: Mapping) -> Dict:
    """
    Per-day revenue, collections and occupancy for bookings created on each day.
    Occupancy is measured against the actual number of rooms in the hotel.
    """
    supabase = get_supabase()
    total_rooms = len(RoomModel.get_all())
    bookings = in_range(supabase.table('bookings').select('*'), 'created_at', start, end).execute().data or []
    booking_ids = [b['id'] for b in bookings]
    legs = fetch_grouped('booking_rooms', 'booking_id', booking_ids)
    breakdowns = fetch_by_ids('booking_payment_breakdown', booking_ids, column='booking_id')
    charges = fetch_grouped('charge_items', 'booking_id', booking_ids)
    transactions = fetch_grouped('payment_transactions', 'booking_id', booking_ids)
    stays = supabase.table('booking_rooms').select('*').in_(
        'room_status', ['checked_in', 'checked_out']
    ).lte('check_in_date', end.isoformat()).gt('check_out_date', start.isoformat()).execute().data or []

    records = []
    for day in date_range(start, end):
        key = day.isoformat()
        record = {
            'id': f"settlement-{key}",
            'date': key,
            'room_revenue': 0.0,
            'service_revenue': 0.0,
            'advance_collections': 0.0,
            'outstanding_amount': 0.0,
            'total_collections': 0.0
        }
        record.update({f"{method}_collections": 0.0 for method in PAYMENT_METHODS})

        for booking in (b for b in bookings if (b.get('created_at') or '')[:10] == key):
            record['room_revenue'] += sum(float(leg.get('room_total') or 0) for leg in legs.get(booking['id'], []))
            record['service_revenue'] += sum(
                float(item.get('total_amount') or 0) for item in charges.get(booking['id'], [])
            )
            breakdown = breakdowns.get(booking['id'])
            if breakdown:
                record['advance_collections'] += sum_advances(breakdown)
                record['outstanding_amount'] += float(breakdown.get('outstanding_amount') or 0)
            for transaction in transactions.get(booking['id'], []):
                amount = float(transaction.get('amount') or 0)
                record['total_collections'] += amount
                method = transaction.get('payment_method')
                if method in PAYMENT_METHODS:
                    record[f"{method}_collections"] += amount

        occupied = {
            s['room_id'] for s in stays
            if (s.get('check_in_date') or '')[:10] <= key < (s.get('check_out_date') or '')[:10]
        }
        record['total_revenue'] = record['room_revenue'] + record['service_revenue']
        record['total_rooms'] = total_rooms
        record['occupied_rooms'] = len(occupied)
        record['occupancy_percentage'] = round(len(occupied) / total_rooms * 100, 2) if total_rooms else 0
        record['average_room_rate'] = round(record['room_revenue'] / len(occupied), 2) if occupied else 0
        records.append(record)

    average = round(sum(r['occupancy_percentage'] for r in records) / len(records), 2) if records else 0
    return {
        'total': len(records),
        'data': records,
        'summary': {
            'total_revenue': sum(r['total_revenue'] for r in records),
            'total_collections': sum(r['total_collections'] for r in records),
            'total_outstanding': sum(r['outstanding_amount'] for r in records),
            'average_occupancy': average,
            'period': _period(start, end)
        }
    }
