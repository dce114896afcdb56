"""
Checkout processing with grace-period late fees, checkout alerts and statistics
"""
import math
import logging
from datetime import datetime, timedelta, time as dt_time
from typing import Dict, List, Optional
from hotel_pms.config import Config
from hotel_pms.database.db import get_supabase
from hotel_pms.database.bookings import BookingModel
from hotel_pms.database.models import StaffModel, fetch_by_ids, first
from hotel_pms.errors import ValidationError, NotFoundError
from hotel_pms.services.date_utils import parse_datetime, parse_date
from hotel_pms.services.billing import to_number

logger = logging.getLogger(__name__)

NOTIFICATION_TYPES = ['approaching', 'overdue', 'grace_period', 'late_charges', 'checkout_completed']


def scheduled_checkout(check_out_date) -> Optional[datetime]:
    """A bare check-out date means the hotel's standard checkout time on that day"""
    if check_out_date is None:
        return None
    text = str(check_out_date)
    if 'T' in text or ' ' in text.strip():
        return parse_datetime(text)
    day = parse_date(text)
    if day is None:
        return None
    hours, minutes = (int(part) for part in Config.HOTEL_INFO['check_out_time'].split(':'))
    return datetime.combine(day, dt_time(hours, minutes))


def calculate_late_fee(scheduled: datetime, actual: datetime, settings: Dict = None) -> Dict:
    """
    Late fee for checking out at ``actual`` against ``scheduled``.
    Minutes inside the grace period are free; each started hour past it is
    charged at the hourly rate, capped at max_fee. A disabled grace period
    charges from the first late minute.
    """
    settings = settings or Config.CHECKOUT_GRACE_PERIOD
    result = {'is_late': False, 'late_fee': 0.0, 'grace_period_used': False, 'late_minutes': 0}
    if scheduled is None or actual is None or actual <= scheduled:
        return result

    late_minutes = math.floor((actual - scheduled).total_seconds() / 60)
    result['is_late'] = True
    result['late_minutes'] = late_minutes
    grace = settings['grace_minutes'] if settings.get('enabled', True) else 0
    if grace and late_minutes <= grace:
        result['grace_period_used'] = True
        return result

    hours_over = math.ceil((late_minutes - grace) / 60)
    result['late_fee'] = float(min(hours_over * settings['hourly_rate'], settings['max_fee']))
    return result


class CheckoutService:
    """Checkout processing and checkout notifications"""

    @staticmethod
    def process_checkout(request: Dict) -> Dict:
        """
        Check out every room of a booking, settle the bill and record side effects.

        Args:
            request: booking_id, actual_check_out_date, final_amount,
                price_adjustment, remaining_balance, payment_method,
                collected_by, notes
        Returns:
            dict: success, data (updated booking), is_late_checkout,
                late_fee, grace_period_used
        """
        for field in ('booking_id', 'actual_check_out_date'):
            if not request.get(field):
                raise ValidationError(f"Missing required field: {field}")

        actual = parse_datetime(request['actual_check_out_date'])
        if actual is None:
            raise ValidationError('Invalid checkout date')

        booking_id = request['booking_id']
        booking = BookingModel.get_by_id(booking_id)
        if not booking:
            raise NotFoundError('Booking not found')
        if booking['status'] not in ('checked_in', 'confirmed'):
            raise ValidationError('Booking is not in a valid state for checkout')

        legs = BookingModel.get_booking_rooms(booking_id)
        scheduled = scheduled_checkout(legs[0]['check_out_date']) if legs else None
        fee = calculate_late_fee(scheduled, actual)

        final_amount = to_number(request.get('final_amount'), 'finalAmount') + fee['late_fee']
        price_adjustment = to_number(request.get('price_adjustment'), 'priceAdjustment')
        remaining_balance = to_number(request.get('remaining_balance'), 'remainingBalance')
        moment = actual.isoformat()
        now = datetime.now().isoformat()

        supabase = get_supabase()
        try:
            supabase.table('bookings').update({
                'status': 'checked_out',
                'actual_check_out': moment,
                'checkout_notes': request.get('notes'),
                'updated_at': now
            }).eq('id', booking_id).execute()
            supabase.table('booking_payment_breakdown').update({
                'total_amount': final_amount,
                'price_adjustment': price_adjustment,
                'taxed_total_amount': final_amount,
                'outstanding_amount': remaining_balance or 0,
                'updated_at': now
            }).eq('booking_id', booking_id).execute()
            supabase.table('booking_rooms').update({
                'room_status': 'checked_out',
                'actual_check_out': moment
            }).eq('booking_id', booking_id).execute()
            room_ids = [leg['room_id'] for leg in legs]
            if room_ids:
                supabase.table('rooms').update({
                    'status': 'available',
                    'updated_at': now
                }).in_('id', room_ids).execute()
        except Exception as e:
            logger.error(f"Error processing checkout for booking {booking_id}: {e}")
            raise

        CheckoutService._record_side_effects(booking, legs, request, fee, scheduled, actual, remaining_balance)

        return {
            'success': True,
            'data': BookingModel.get_enriched(booking_id),
            'is_late_checkout': fee['is_late'],
            'late_fee': fee['late_fee'],
            'grace_period_used': fee['grace_period_used']
        }

    @staticmethod
    def _record_side_effects(booking, legs, request, fee, scheduled, actual, remaining_balance) -> None:
        """Charges, receipts, alerts and the audit log; each is best-effort"""
        supabase = get_supabase()
        booking_id = booking['id']
        collected_by = request.get('collected_by')
        room_id = legs[0]['room_id'] if legs else None

        if fee['late_fee'] > 0:
            try:
                supabase.table('late_checkout_charges').insert({
                    'booking_id': booking_id,
                    'room_id': room_id,
                    'scheduled_checkout': scheduled.isoformat() if scheduled else None,
                    'actual_checkout': actual.isoformat(),
                    'late_minutes': fee['late_minutes'],
                    'charge_amount': fee['late_fee'],
                    'created_at': datetime.now().isoformat()
                }).execute()
            except Exception as e:
                logger.warning(f"Failed to record late checkout charge: {e}")

        if fee['grace_period_used']:
            try:
                supabase.table('grace_period_tracker').insert({
                    'booking_id': booking_id,
                    'room_id': room_id,
                    'grace_minutes_used': fee['late_minutes'],
                    'created_at': datetime.now().isoformat()
                }).execute()
            except Exception as e:
                logger.warning(f"Failed to record grace period usage: {e}")

        if remaining_balance > 0:
            try:
                supabase.table('payment_transactions').insert({
                    'booking_id': booking_id,
                    'amount': remaining_balance,
                    'payment_method': request.get('payment_method') or 'cash',
                    'transaction_type': 'receipt',
                    'status': 'completed',
                    'collected_by': collected_by,
                    'notes': 'Final payment at checkout',
                    'created_at': datetime.now().isoformat()
                }).execute()
            except Exception as e:
                logger.warning(f"Failed to record checkout payment: {e}")

        if fee['late_fee'] > 0:
            kind = 'late_charges'
            message = f"Late checkout: {fee['late_minutes']} minutes late, fee {fee['late_fee']:.2f}"
        elif fee['grace_period_used']:
            kind = 'grace_period'
            message = f"Checkout within grace period ({fee['late_minutes']} minutes late)"
        else:
            kind = 'checkout_completed'
            message = 'Checkout completed on time'
        try:
            CheckoutService.create_checkout_notification(
                booking_id, kind, message, room_id=room_id,
                expected_checkout=scheduled.isoformat() if scheduled else None,
                is_active=kind != 'checkout_completed'
            )
        except Exception as e:
            logger.warning(f"Failed to create checkout notification: {e}")

        StaffModel.log_action(collected_by, 'checkout_processed', {
            'booking_id': booking_id,
            'booking_number': booking.get('booking_number'),
            'late_fee': fee['late_fee'],
            'grace_period_used': fee['grace_period_used'],
            'remaining_balance': remaining_balance
        })

    @staticmethod
    def create_checkout_notification(booking_id, notification_type: str, message: str,
                                     room_id=None, expected_checkout=None, is_active: bool = True) -> Dict:
        if notification_type not in NOTIFICATION_TYPES:
            raise ValidationError('Invalid notification type')
        supabase = get_supabase()
        return first(supabase.table('checkout_notifications').insert({
            'booking_id': booking_id,
            'room_id': room_id,
            'notification_type': notification_type,
            'message': message,
            'expected_checkout': expected_checkout,
            'is_active': is_active,
            'created_at': datetime.now().isoformat()
        }).execute())

    @staticmethod
    def get_active_checkout_alerts() -> List[Dict]:
        supabase = get_supabase()
        alerts = supabase.table('checkout_notifications').select('*').eq('is_active', True).order(
            'created_at', desc=True
        ).execute().data or []
        bookings = fetch_by_ids('bookings', [a.get('booking_id') for a in alerts])
        rooms = fetch_by_ids('rooms', [a.get('room_id') for a in alerts])
        for alert in alerts:
            alert['booking_number'] = bookings.get(alert.get('booking_id'), {}).get('booking_number')
            alert['room_number'] = rooms.get(alert.get('room_id'), {}).get('number')
        return alerts

    @staticmethod
    def dismiss_notification(notification_id, staff_id=None) -> Dict:
        supabase = get_supabase()
        updated = first(supabase.table('checkout_notifications').update({
            'is_active': False,
            'dismissed_at': datetime.now().isoformat(),
            'dismissed_by': staff_id
        }).eq('id', notification_id).execute())
        if not updated:
            raise NotFoundError('Notification not found')
        return updated

    @staticmethod
    def get_checkout_statistics(start_date=None, end_date=None) -> Dict:
        """Checkout totals for a period, default the last 30 days"""
        end = parse_date(end_date) or datetime.now().date()
        start = parse_date(start_date) or (end - timedelta(days=30))
        supabase = get_supabase()
        try:
            response = supabase.rpc('get_checkout_statistics', {
                'p_start_date': start.isoformat(),
                'p_end_date': end.isoformat()
            }).execute()
            if response.data:
                return response.data[0] if isinstance(response.data, list) else response.data
        except Exception as e:
            logger.warning(f"get_checkout_statistics rpc unavailable ({e}); computing from tables")

        lower = f"{start.isoformat()}T00:00:00"
        upper = f"{end.isoformat()}T23:59:59"
        checkouts = supabase.table('bookings').select('id').eq('status', 'checked_out').gte(
            'actual_check_out', lower
        ).lte('actual_check_out', upper).execute().data or []
        charges = supabase.table('late_checkout_charges').select('charge_amount').gte(
            'created_at', lower
        ).lte('created_at', upper).execute().data or []
        grace = supabase.table('grace_period_tracker').select('id').gte(
            'created_at', lower
        ).lte('created_at', upper).execute().data or []

        return {
            'total_checkouts': len(checkouts),
            'late_checkouts': len(charges),
            'total_late_fees': sum(float(c.get('charge_amount') or 0) for c in charges),
            'grace_period_uses': len(grace),
            'start_date': start.isoformat(),
            'end_date': end.isoformat()
        }

    @staticmethod
    def _checked_in_stays() -> List[Dict]:
        supabase = get_supabase()
        stays = supabase.table('booking_rooms').select('*').eq('room_status', 'checked_in').execute().data or []
        bookings = fetch_by_ids('bookings', [s['booking_id'] for s in stays])
        rooms = fetch_by_ids('rooms', [s['room_id'] for s in stays])
        guests = fetch_by_ids('guests', [b.get('guest_id') for b in bookings.values()])

        result = []
        for stay in stays:
            booking = bookings.get(stay['booking_id'], {})
            expected = scheduled_checkout(stay['check_out_date'])
            result.append({
                'booking_id': stay['booking_id'],
                'booking_number': booking.get('booking_number'),
                'guest_name': guests.get(booking.get('guest_id'), {}).get('name', 'N/A'),
                'room_id': stay['room_id'],
                'room_number': rooms.get(stay['room_id'], {}).get('number'),
                'expected_checkout': expected
            })
        return result

    @staticmethod
    def get_approaching_checkouts(hours_ahead: int = 2) -> List[Dict]:
        now = datetime.now()
        horizon = now + timedelta(hours=hours_ahead)
        approaching = []
        for stay in CheckoutService._checked_in_stays():
            expected = stay['expected_checkout']
            if expected and now <= expected <= horizon:
                approaching.append({
                    **stay,
                    'expected_checkout': expected.isoformat(),
                    'minutes_remaining': int((expected - now).total_seconds() // 60)
                })
        return approaching

    @staticmethod
    def process_automated_notifications(hours_ahead: int = 2) -> Dict:
        """Create approaching/overdue alerts for checked-in stays, once per booking and type"""
        supabase = get_supabase()
        active = supabase.table('checkout_notifications').select('booking_id, notification_type').eq(
            'is_active', True
        ).execute().data or []
        existing = {(a['booking_id'], a['notification_type']) for a in active}

        now = datetime.now()
        horizon = now + timedelta(hours=hours_ahead)
        created = {'approaching': 0, 'overdue': 0}
        for stay in CheckoutService._checked_in_stays():
            expected = stay['expected_checkout']
            if expected is None:
                continue
            if now <= expected <= horizon:
                kind = 'approaching'
                minutes = int((expected - now).total_seconds() // 60)
                message = f"Room {stay['room_number']} ({stay['guest_name']}) checks out in {minutes} minutes"
            elif expected < now:
                kind = 'overdue'
                minutes = int((now - expected).total_seconds() // 60)
                message = f"Room {stay['room_number']} ({stay['guest_name']}) is {minutes} minutes past checkout"
            else:
                continue
            if (stay['booking_id'], kind) in existing:
                continue
            CheckoutService.create_checkout_notification(
                stay['booking_id'], kind, message,
                room_id=stay['room_id'], expected_checkout=expected.isoformat()
            )
            existing.add((stay['booking_id'], kind))
            created[kind] += 1

        logger.info(f"Checkout alerts created: {created}")
        return created
