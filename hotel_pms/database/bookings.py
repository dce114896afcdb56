"""
Booking, payment and room-block operations for Hotel PMS
"""
import random
import time
from datetime import datetime, date
from typing import List, Dict, Optional
from hotel_pms.database.db import get_supabase
from hotel_pms.database.models import (
    RoomModel, GuestModel, StaffModel, HousekeepingModel,
    fetch_by_ids, fetch_grouped, first, ACTIVE_ROOM_STATUSES
)
from hotel_pms.errors import ValidationError, NotFoundError, ConflictError
from hotel_pms.services.billing import (
    calculate_taxes, to_number, PAYMENT_METHODS, BREAKDOWN_SUFFIX
)
from hotel_pms.services.date_utils import (
    parse_date, parse_datetime, do_dates_overlap, get_days_difference, validate_booking_dates
)
import logging

logger = logging.getLogger(__name__)

BOOKING_STATUSES = ['confirmed', 'checked_in', 'checked_out', 'cancelled', 'no_show', 'pending']


def generate_booking_number() -> str:
    return f"BK{int(time.time() * 1000)}{random.randint(100, 999)}"


class BookingModel:
    """Booking database operations"""

    @staticmethod
    def get_by_id(booking_id) -> Optional[Dict]:
        """Get booking by ID"""
        try:
            supabase = get_supabase()
            return first(supabase.table('bookings').select('*').eq('id', booking_id).execute())
        except Exception as e:
            logger.error(f"Error getting booking {booking_id}: {e}")
            raise

    @staticmethod
    def get_booking_rooms(booking_id) -> List[Dict]:
        supabase = get_supabase()
        return supabase.table('booking_rooms').select('*').eq('booking_id', booking_id).order(
            'check_in_date'
        ).execute().data or []

    @staticmethod
    def get_all(status: Optional[str] = None) -> List[Dict]:
        """Bookings with their primary room and guest flattened in"""
        supabase = get_supabase()
        query = supabase.table('bookings').select('*')
        if status:
            query = query.eq('status', status)
        bookings = query.order('created_at', desc=True).execute().data or []

        stays = fetch_grouped('booking_rooms', 'booking_id', [b['id'] for b in bookings])
        rooms = fetch_by_ids('rooms', [s['room_id'] for legs in stays.values() for s in legs])
        room_types = fetch_by_ids('room_types', [r.get('room_type_id') for r in rooms.values()])
        guests = fetch_by_ids('guests', [b.get('guest_id') for b in bookings])

        enriched = []
        for booking in bookings:
            legs = sorted(stays.get(booking['id'], []), key=lambda s: s.get('check_in_date') or '')
            primary = legs[0] if legs else {}
            room = rooms.get(primary.get('room_id'), {})
            guest = guests.get(booking.get('guest_id'), {})
            enriched.append({
                **booking,
                'room_count': len(legs),
                'room_id': primary.get('room_id'),
                'room_number': room.get('number', 'N/A'),
                'room_type': room_types.get(room.get('room_type_id'), {}).get('name', 'N/A'),
                'check_in': primary.get('check_in_date'),
                'check_out': primary.get('check_out_date'),
                'guest_name': guest.get('name', 'N/A'),
                'guest_phone': guest.get('phone', 'N/A')
            })
        return enriched

    @staticmethod
    def get_enriched(booking_id) -> Optional[Dict]:
        """Single booking with rooms, guest, breakdown and transactions"""
        booking = BookingModel.get_by_id(booking_id)
        if not booking:
            return None

        legs = BookingModel.get_booking_rooms(booking_id)
        rooms = fetch_by_ids('rooms', [leg['room_id'] for leg in legs])
        for leg in legs:
            leg['room_number'] = rooms.get(leg['room_id'], {}).get('number')

        booking['booking_rooms'] = legs
        booking['guest'] = GuestModel.get_by_id(booking['guest_id']) if booking.get('guest_id') else None
        booking['payment_breakdown'] = PaymentModel.get_breakdown(booking_id)
        booking['payment_transactions'] = PaymentModel.get_transactions(booking_id)
        return booking

    @staticmethod
    def check_room_availability(room_id, check_in, check_out, exclude_booking_id=None) -> bool:
        """Check if room is free of reserved/checked-in stays for the dates"""
        supabase = get_supabase()
        stays = supabase.table('booking_rooms').select('*').eq('room_id', room_id).in_(
            'room_status', ACTIVE_ROOM_STATUSES
        ).execute().data or []

        requested_in = parse_date(check_in)
        for stay in stays:
            if exclude_booking_id is not None and stay.get('booking_id') == exclude_booking_id:
                continue
            if parse_date(stay['check_in_date']) == requested_in:
                return False
            if do_dates_overlap(check_in, check_out, stay['check_in_date'], stay['check_out_date']):
                return False
        return True

    @staticmethod
    def create_with_rooms(data: Dict) -> Dict:
        """
        Create a booking with one booking_rooms row per requested room.

        Args:
            data: guest (dict) or guest_id, rooms [{room_id, check_in_date,
                check_out_date}], plus optional booking attributes and an
                ``advance`` mapping of payment method -> amount
        Returns:
            dict: the enriched booking
        """
        rooms_requested = data.get('rooms') or []
        if not rooms_requested:
            raise ValidationError('At least one room is required')

        legs = []
        for requested in rooms_requested:
            check_in = requested.get('check_in_date') or data.get('check_in')
            check_out = requested.get('check_out_date') or data.get('check_out')
            if not requested.get('room_id') or not check_in or not check_out:
                raise ValidationError('Each room needs room_id, check_in_date and check_out_date')
            errors = validate_booking_dates(check_in, check_out, allow_past=data.get('allow_past', False))
            if errors:
                raise ValidationError(errors[0])

            room = RoomModel.get_by_id(requested['room_id'])
            if not room:
                raise NotFoundError('Room not found')
            clashes_in_request = any(
                str(leg['room_id']) == str(room['id'])
                and do_dates_overlap(check_in, check_out, leg['check_in_date'], leg['check_out_date'])
                for leg in legs
            )
            if room['status'] in ('maintenance', 'blocked') or clashes_in_request \
                    or not BookingModel.check_room_availability(room['id'], check_in, check_out):
                raise ConflictError(f"Room {room['number']} is not available for the selected dates")

            rate = float((room.get('room_type') or {}).get('base_price') or room.get('price') or 0)
            nights = max(1, get_days_difference(check_in, check_out))
            legs.append({
                'room_id': room['id'],
                'room_type_id': room.get('room_type_id'),
                'check_in_date': parse_date(check_in).isoformat(),
                'check_out_date': parse_date(check_out).isoformat(),
                'room_status': 'reserved',
                'room_rate': rate,
                'expected_nights': nights,
                'room_total': rate * nights,
                'created_at': datetime.now().isoformat()
            })

        advance = {method: to_number((data.get('advance') or {}).get(method), f"{method} advance")
                   for method in PAYMENT_METHODS}
        guests = {
            'number_of_guests': to_number(data.get('number_of_guests'), 'number_of_guests', int, 1),
            'extra_guests': to_number(data.get('extra_guests'), 'extra_guests', int),
            'child_guests': to_number(data.get('child_guests'), 'child_guests', int)
        }

        if data.get('guest_id'):
            guest = GuestModel.get_by_id(data['guest_id'])
            if not guest:
                raise NotFoundError('Guest not found')
        else:
            guest = GuestModel.get_or_create(data.get('guest') or {})

        supabase = get_supabase()
        booking_record = {
            'booking_number': generate_booking_number(),
            'guest_id': guest['id'],
            'staff_id': data.get('staff_id'),
            'status': 'confirmed',
            **guests,
            'arrival_type': data.get('arrival_type', 'walk_in'),
            'ota_company': data.get('ota_company'),
            'meal_plan': data.get('meal_plan', 'EP'),
            'plan_name': data.get('plan_name', 'STD'),
            'purpose': data.get('purpose'),
            'special_requests': data.get('special_requests'),
            'complimentary_reason': data.get('complimentary_reason'),
            'planned_nights': max(leg['expected_nights'] for leg in legs),
            'booked_on': datetime.now().isoformat(),
            'created_at': datetime.now().isoformat()
        }
        try:
            booking = first(supabase.table('bookings').insert(booking_record).execute())
            for leg in legs:
                leg['booking_id'] = booking['id']
            supabase.table('booking_rooms').insert(legs).execute()
        except Exception as e:
            logger.error(f"Error creating booking: {e}")
            raise

        total = sum(leg['room_total'] for leg in legs)
        PaymentModel.create_breakdown(booking['id'], total, advance, data.get('staff_id'))

        StaffModel.log_action(data.get('staff_id'), 'CREATE_BOOKING', {
            'booking_id': booking['id'],
            'booking_number': booking['booking_number'],
            'guest_name': guest.get('name'),
            'rooms': [leg['room_id'] for leg in legs]
        })
        return BookingModel.get_enriched(booking['id'])

    @staticmethod
    def update(booking_id, data: Dict) -> Optional[Dict]:
        booking = BookingModel.get_by_id(booking_id)
        if not booking:
            raise NotFoundError('Booking not found')
        if 'status' in data and data['status'] not in BOOKING_STATUSES:
            raise ValidationError('Invalid status')
        allowed = {k: v for k, v in data.items() if k in (
            'status', 'number_of_guests', 'extra_guests', 'child_guests', 'arrival_type',
            'ota_company', 'meal_plan', 'plan_name', 'purpose', 'special_requests',
            'complimentary_reason', 'complimentary_approved_by', 'bill_number'
        )}
        if allowed.get('complimentary_approved_by'):
            allowed['complimentary_approved_date'] = datetime.now().isoformat()
        allowed['updated_at'] = datetime.now().isoformat()
        supabase = get_supabase()
        supabase.table('bookings').update(allowed).eq('id', booking_id).execute()
        return BookingModel.get_enriched(booking_id)

    @staticmethod
    def check_in(booking_id, staff_id=None, actual_check_in=None) -> Dict:
        """Mark the booking, its rooms and their stays as checked in"""
        booking = BookingModel.get_by_id(booking_id)
        if not booking:
            raise NotFoundError('Booking not found')
        if booking['status'] == 'checked_in':
            raise ValidationError('Booking is already checked in')
        if booking['status'] in ('checked_out', 'cancelled'):
            raise ValidationError(f"Cannot check in a {booking['status'].replace('_', ' ')} booking")

        legs = [leg for leg in BookingModel.get_booking_rooms(booking_id) if leg['room_status'] == 'reserved']
        if not legs:
            raise ValidationError('No reserved rooms to check in')
        rooms = fetch_by_ids('rooms', [leg['room_id'] for leg in legs])
        for room in rooms.values():
            if room['status'] in ('occupied', 'blocked'):
                raise ConflictError(
                    f"Room {room['number']} is not available for check-in (Status: {room['status']})"
                )

        moment = (parse_datetime(actual_check_in) or datetime.now()).isoformat()
        supabase = get_supabase()
        supabase.table('bookings').update({
            'status': 'checked_in',
            'actual_check_in': moment,
            'updated_at': datetime.now().isoformat()
        }).eq('id', booking_id).execute()
        supabase.table('booking_rooms').update({
            'room_status': 'checked_in',
            'actual_check_in': moment
        }).eq('booking_id', booking_id).eq('room_status', 'reserved').execute()
        supabase.table('rooms').update({
            'status': 'occupied',
            'updated_at': datetime.now().isoformat()
        }).in_('id', list(rooms)).execute()

        StaffModel.log_action(staff_id or booking.get('staff_id'), 'CHECK_IN', {
            'booking_id': booking_id,
            'booking_number': booking['booking_number'],
            'room_numbers': ', '.join(str(r['number']) for r in rooms.values()),
            'actual_check_in': moment
        })
        return BookingModel.get_enriched(booking_id)

    @staticmethod
    def check_out_room(booking_id, room_id=None, actual_check_out=None, staff_id=None) -> Dict:
        """
        Check out one room of a booking (or all rooms when room_id is None).
        The booking itself is closed once no room remains checked in.
        """
        booking = BookingModel.get_by_id(booking_id)
        if not booking:
            raise NotFoundError('Booking not found')
        if booking['status'] not in ('checked_in', 'confirmed'):
            raise ValidationError('Booking is not in a valid state for checkout')

        legs = BookingModel.get_booking_rooms(booking_id)
        to_checkout = [leg for leg in legs
                       if leg['room_status'] in ACTIVE_ROOM_STATUSES
                       and (room_id is None or str(leg['room_id']) == str(room_id))]
        if not to_checkout:
            raise ValidationError('No rooms to check out')

        moment = (parse_datetime(actual_check_out) or datetime.now()).isoformat()
        supabase = get_supabase()
        for leg in to_checkout:
            update_data = {'room_status': 'checked_out', 'actual_check_out': moment}
            # Stays checked out straight from reserved still need an arrival time
            if leg['room_status'] == 'reserved':
                update_data['actual_check_in'] = moment
            supabase.table('booking_rooms').update(update_data).eq('id', leg['id']).execute()

        room_ids = [leg['room_id'] for leg in to_checkout]
        supabase.table('rooms').update({
            'status': 'available',
            'updated_at': datetime.now().isoformat()
        }).in_('id', room_ids).execute()
        HousekeepingModel.create_checkout_tasks(room_ids, booking['booking_number'])

        remaining = [leg for leg in legs
                     if leg['room_status'] in ACTIVE_ROOM_STATUSES and leg not in to_checkout]
        if not remaining:
            supabase.table('bookings').update({
                'status': 'checked_out',
                'actual_check_out': moment,
                'updated_at': datetime.now().isoformat()
            }).eq('id', booking_id).execute()

        StaffModel.log_action(staff_id or booking.get('staff_id'), 'CHECK_OUT', {
            'booking_id': booking_id,
            'booking_number': booking['booking_number'],
            'rooms': room_ids,
            'actual_check_out': moment
        })

        stay = to_checkout[0]
        return {
            'booking': BookingModel.get_enriched(booking_id),
            'days_difference': get_days_difference(
                stay.get('actual_check_in') or stay['check_in_date'], moment
            )
        }

    @staticmethod
    def cancel(booking_id, reason: str, staff_id=None, refund_amount: float = 0) -> Dict:
        """Cancel a booking and release its rooms"""
        if not reason:
            raise ValidationError('Cancellation reason is required')
        refund_amount = to_number(refund_amount, 'refund_amount')
        booking = BookingModel.get_by_id(booking_id)
        if not booking:
            raise NotFoundError('Booking not found')
        if booking['status'] in ('cancelled', 'checked_out'):
            raise ValidationError(f"Booking is already {booking['status'].replace('_', ' ')}")

        supabase = get_supabase()
        try:
            supabase.rpc('cancel_booking', {
                'p_booking_id': booking_id,
                'p_cancellation_reason': reason,
                'p_cancelled_by_staff_id': staff_id,
                'p_refund_amount': refund_amount
            }).execute()
        except Exception as e:
            logger.warning(f"cancel_booking rpc unavailable ({e}); cancelling through table updates")
            BookingModel._cancel_with_updates(booking, reason, staff_id, refund_amount)

        StaffModel.log_action(staff_id, 'CANCEL_BOOKING', {
            'booking_id': booking_id,
            'booking_number': booking['booking_number'],
            'reason': reason,
            'refund_amount': refund_amount
        })
        return BookingModel.get_enriched(booking_id)

    @staticmethod
    def _cancel_with_updates(booking: Dict, reason: str, staff_id, refund_amount: float) -> None:
        supabase = get_supabase()
        now = datetime.now().isoformat()
        legs = BookingModel.get_booking_rooms(booking['id'])
        held_rooms = [leg['room_id'] for leg in legs if leg['room_status'] in ACTIVE_ROOM_STATUSES]

        supabase.table('bookings').update({
            'status': 'cancelled',
            'updated_at': now
        }).eq('id', booking['id']).execute()
        supabase.table('booking_rooms').update({'room_status': 'cancelled'}).eq(
            'booking_id', booking['id']
        ).execute()
        if held_rooms and booking['status'] == 'checked_in':
            supabase.table('rooms').update({'status': 'available', 'updated_at': now}).in_(
                'id', held_rooms
            ).execute()
        supabase.table('cancelled_bookings').insert({
            'booking_id': booking['id'],
            'cancellation_reason': reason,
            'cancel_date': now,
            'cancelled_by_staff_id': staff_id,
            'refund_amount': refund_amount or 0,
            'refund_processed': False
        }).execute()

    @staticmethod
    def get_stats() -> Dict:
        supabase = get_supabase()
        bookings = supabase.table('bookings').select('id, status').execute().data or []
        by_status = {status: 0 for status in BOOKING_STATUSES}
        for booking in bookings:
            by_status[booking['status']] = by_status.get(booking['status'], 0) + 1

        today = date.today().isoformat()
        arrivals = supabase.table('booking_rooms').select('id').eq('check_in_date', today).eq(
            'room_status', 'reserved'
        ).execute().data or []
        departures = supabase.table('booking_rooms').select('id').eq('check_out_date', today).eq(
            'room_status', 'checked_in'
        ).execute().data or []
        breakdowns = supabase.table('booking_payment_breakdown').select(
            'total_amount, taxed_total_amount'
        ).execute().data or []

        return {
            'total_bookings': len(bookings),
            'by_status': by_status,
            'arrivals_today': len(arrivals),
            'departures_today': len(departures),
            'total_revenue': sum(float(b.get('taxed_total_amount') or b.get('total_amount') or 0)
                                 for b in breakdowns)
        }


class PaymentModel:
    """Payment breakdown and transaction operations"""

    @staticmethod
    def get_breakdown(booking_id) -> Optional[Dict]:
        supabase = get_supabase()
        return first(supabase.table('booking_payment_breakdown').select('*').eq(
            'booking_id', booking_id
        ).execute())

    @staticmethod
    def get_transactions(booking_id) -> List[Dict]:
        supabase = get_supabase()
        return supabase.table('payment_transactions').select('*').eq('booking_id', booking_id).order(
            'created_at'
        ).execute().data or []

    @staticmethod
    def create_breakdown(booking_id, total_amount: float, advance: Dict, collected_by=None) -> Dict:
        """Initial breakdown with taxes and any advances taken at booking time"""
        taxes = calculate_taxes(total_amount)
        record = {
            'booking_id': booking_id,
            'total_amount': total_amount,
            'total_tax_amount': taxes['total_tax'],
            'taxed_total_amount': taxes['grand_total'],
            'price_adjustment': 0,
            'created_at': datetime.now().isoformat()
        }
        paid = 0.0
        for method in PAYMENT_METHODS:
            amount = to_number(advance.get(method), f"{method} advance")
            record[f"advance_{BREAKDOWN_SUFFIX[method]}"] = amount
            record[f"receipt_{BREAKDOWN_SUFFIX[method]}"] = 0
            paid += amount
        record['outstanding_amount'] = max(0.0, taxes['grand_total'] - paid)

        supabase = get_supabase()
        breakdown = first(supabase.table('booking_payment_breakdown').insert(record).execute())

        transactions = [{
            'booking_id': booking_id,
            'amount': to_number(advance[method], f"{method} advance"),
            'payment_method': method,
            'transaction_type': 'advance',
            'status': 'completed',
            'collected_by': collected_by,
            'notes': 'Advance at booking',
            'created_at': datetime.now().isoformat()
        } for method in PAYMENT_METHODS if to_number(advance.get(method), f"{method} advance") > 0]
        if transactions:
            supabase.table('payment_transactions').insert(transactions).execute()
        return breakdown

    @staticmethod
    def add_transaction(booking_id, amount, payment_method: str, transaction_type: str = 'receipt',
                        collected_by=None, notes: str = '') -> Dict:
        try:
            amount = float(amount)
        except (TypeError, ValueError):
            raise ValidationError('Invalid amount')
        if amount <= 0:
            raise ValidationError('Amount must be greater than 0')
        if payment_method not in PAYMENT_METHODS:
            raise ValidationError(f"Invalid payment method. Must be one of: {', '.join(PAYMENT_METHODS)}")
        if transaction_type not in ('advance', 'receipt'):
            raise ValidationError('Invalid transaction type')
        if not BookingModel.get_by_id(booking_id):
            raise NotFoundError('Booking not found')

        supabase = get_supabase()
        transaction = first(supabase.table('payment_transactions').insert({
            'booking_id': booking_id,
            'amount': amount,
            'payment_method': payment_method,
            'transaction_type': transaction_type,
            'status': 'completed',
            'collected_by': collected_by,
            'notes': notes,
            'created_at': datetime.now().isoformat()
        }).execute())

        breakdown = PaymentModel.get_breakdown(booking_id)
        column = f"{transaction_type}_{BREAKDOWN_SUFFIX[payment_method]}"
        if breakdown:
            supabase.table('booking_payment_breakdown').update({
                column: float(breakdown.get(column) or 0) + amount,
                'outstanding_amount': max(0.0, float(breakdown.get('outstanding_amount') or 0) - amount),
                'updated_at': datetime.now().isoformat()
            }).eq('booking_id', booking_id).execute()
        else:
            logger.warning(f"Booking {booking_id} has no payment breakdown; transaction recorded only")
        return transaction


class BlockedRoomModel:
    """Room blocking (out of order) operations"""

    @staticmethod
    def get_active() -> List[Dict]:
        supabase = get_supabase()
        blocks = supabase.table('blocked_rooms').select('*').eq('is_active', True).order(
            'blocked_date', desc=True
        ).execute().data or []
        rooms = fetch_by_ids('rooms', [b['room_id'] for b in blocks])
        for block in blocks:
            block['room_number'] = rooms.get(block['room_id'], {}).get('number')
        return blocks

    @staticmethod
    def block(room_id, reason: str, staff_id=None, from_date=None, to_date=None, notes=None) -> Dict:
        if not reason:
            raise ValidationError('Reason is required')
        room = RoomModel.get_by_id(room_id)
        if not room:
            raise NotFoundError('Room not found')
        if room['status'] == 'occupied':
            raise ConflictError(f"Room {room['number']} is occupied and cannot be blocked")
        if room['status'] == 'blocked':
            raise ConflictError(f"Room {room['number']} is already blocked")

        supabase = get_supabase()
        now = datetime.now()
        block = first(supabase.table('blocked_rooms').insert({
            'room_id': room_id,
            'reason': reason,
            'blocked_by_staff_id': staff_id,
            'blocked_date': now.isoformat(),
            'blocked_from_date': format_or_today(from_date),
            'blocked_to_date': format_or_none(to_date),
            'notes': notes,
            'is_active': True
        }).execute())
        RoomModel.update_status(room_id, 'blocked')
        StaffModel.log_action(staff_id, 'BLOCK_ROOM', {'room_number': room['number'], 'reason': reason})
        return block

    @staticmethod
    def unblock(block_id, staff_id=None, unblock_reason: Optional[str] = None) -> Dict:
        supabase = get_supabase()
        block = first(supabase.table('blocked_rooms').select('*').eq('id', block_id).execute())
        if not block:
            raise NotFoundError('Blocked room record not found')
        if not block.get('is_active'):
            raise ValidationError('Room is already unblocked')

        updated = first(supabase.table('blocked_rooms').update({
            'is_active': False,
            'unblocked_by_staff_id': staff_id,
            'unblocked_date': datetime.now().isoformat(),
            'unblock_reason': unblock_reason
        }).eq('id', block_id).execute())
        RoomModel.update_status(block['room_id'], 'available')
        StaffModel.log_action(staff_id, 'UNBLOCK_ROOM', {'room_id': block['room_id'], 'reason': unblock_reason})
        return updated


def format_or_today(value) -> str:
    parsed = parse_date(value)
    return (parsed or date.today()).isoformat()


def format_or_none(value) -> Optional[str]:
    parsed = parse_date(value)
    return parsed.isoformat() if parsed else None
