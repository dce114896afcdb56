"""
Room transfers: moving a staying or expected guest from one room to another
"""
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple
from hotel_pms.database.db import get_supabase
from hotel_pms.database.bookings import BookingModel
from hotel_pms.database.models import RoomModel, StaffModel, first
from hotel_pms.errors import ValidationError, NotFoundError
from hotel_pms.services.date_utils import parse_date
from hotel_pms.services import notifications

logger = logging.getLogger(__name__)

TRANSFER_REASONS = [
    "Guest request",
    "Room maintenance required",
    "Room upgrade",
    "Room downgrade",
    "Noise complaint",
    "Room service issue",
    "Plumbing issue",
    "Electrical issue",
    "AC/Heating issue",
    "Housekeeping issue",
    "Guest preference",
    "Operational requirement",
    "Other"
]

TRANSFER_RULES = {
    'max_transfers_per_booking': 3,
    'allowed_hours': (6, 22),
    'max_rate_increase_percentage': 20,
    # lowercased room type name -> types it may move to; unlisted types are unrestricted
    'room_type_compatibility': {
        'standard': ['standard', 'deluxe'],
        'deluxe': ['standard', 'deluxe', 'suite'],
        'suite': ['deluxe', 'suite', 'presidential'],
        'presidential': ['suite', 'presidential']
    }
}


def validate_transfer_rules(from_type: str, to_type: str, transfer_time: datetime,
                            current_transfer_count: int, rate_change: float = 0) -> Tuple[List[str], List[str]]:
    """House rules for a transfer; returns (errors, warnings)"""
    errors, warnings = [], []
    limit = TRANSFER_RULES['max_transfers_per_booking']
    if current_transfer_count >= limit:
        errors.append(f"Maximum transfers per booking ({limit}) exceeded")

    allowed = TRANSFER_RULES['room_type_compatibility'].get((from_type or '').lower())
    if allowed is not None and (to_type or '').lower() not in allowed:
        errors.append(f"Transfer from {from_type} to {to_type} is not allowed")

    start, end = TRANSFER_RULES['allowed_hours']
    if transfer_time.hour < start or transfer_time.hour > end:
        errors.append(f"Transfers are only allowed between {start}:00 and {end}:00")

    if rate_change and rate_change > 0:
        warnings.append('Rate increase requires manager approval')
        max_increase = TRANSFER_RULES['max_rate_increase_percentage']
        if rate_change > max_increase:
            warnings.append(f"Rate increase of {rate_change:.0f}% exceeds {max_increase}%")
    return errors, warnings


class RoomTransferService:
    """Validation, execution and reporting of room transfers"""

    @staticmethod
    def validate_transfer_request(req: Dict) -> Dict:
        """
        Check a transfer request against the booking and both rooms.
        Returns:
            dict: booking, booking_rooms, from_room, to_room
        Raises:
            ValidationError / NotFoundError with the first failing check
        """
        for field in ('booking_id', 'from_room_id', 'to_room_id'):
            if not req.get(field):
                raise ValidationError('Missing required fields: booking, source room and target room')
        if str(req['from_room_id']) == str(req['to_room_id']):
            raise ValidationError('Source and target rooms cannot be the same')
        if not req.get('reason'):
            raise ValidationError('Transfer reason is required')

        booking = BookingModel.get_by_id(req['booking_id'])
        if not booking:
            raise NotFoundError('Booking not found')
        if booking['status'] not in ('confirmed', 'checked_in'):
            raise ValidationError(
                f"Cannot transfer rooms for a booking with status: {booking['status']}"
            )

        legs = BookingModel.get_booking_rooms(booking['id'])
        if not any(str(leg['room_id']) == str(req['from_room_id']) for leg in legs):
            raise ValidationError('Source room is not associated with this booking')

        from_room = RoomModel.get_by_id(req['from_room_id'])
        to_room = RoomModel.get_by_id(req['to_room_id'])
        if not to_room:
            raise NotFoundError('Target room not found')
        if to_room['status'] != 'available':
            raise ValidationError(f"Room {to_room['number']} is not available (Status: {to_room['status']})")

        return {'booking': booking, 'booking_rooms': legs, 'from_room': from_room, 'to_room': to_room}

    @staticmethod
    def transfer_room(req: Dict, now: Optional[datetime] = None) -> Dict:
        """
        Move a booking from one room to another through the
        process_room_transfer database function.
        """
        checked = RoomTransferService.validate_transfer_request(req)
        booking, from_room, to_room = checked['booking'], checked['from_room'], checked['to_room']

        supabase = get_supabase()
        previous = supabase.table('room_transfers').select('id').eq('booking_id', booking['id']).execute().data or []
        from_type = (from_room or {}).get('room_type') or {}
        to_type = to_room.get('room_type') or {}
        rate_change = 0
        if from_type.get('base_price') and to_type.get('base_price'):
            old_rate, new_rate = float(from_type['base_price']), float(to_type['base_price'])
            rate_change = (new_rate - old_rate) / old_rate * 100 if old_rate else 0

        errors, warnings = validate_transfer_rules(
            from_type.get('name'), to_type.get('name'), now or datetime.now(), len(previous), rate_change
        )
        if errors:
            raise ValidationError(errors[0])

        try:
            response = supabase.rpc('process_room_transfer', {
                'p_booking_id': booking['id'],
                'p_from_room_id': req['from_room_id'],
                'p_to_room_id': req['to_room_id'],
                'p_reason': req['reason'],
                'p_transfer_staff_id': req.get('transfer_staff_id')
            }).execute()
        except Exception as e:
            logger.error(f"Room transfer failed for booking {booking['id']}: {e}")
            raise

        data = response.data
        transfer_id = data[0] if isinstance(data, list) and data else data
        if isinstance(transfer_id, dict):
            transfer_id = transfer_id.get('id') or transfer_id.get('transfer_id')

        transfer = first(supabase.table('room_transfers').select('*').eq('id', transfer_id).execute()) \
            if transfer_id else None
        result = {
            'transfer_id': transfer_id,
            'booking': BookingModel.get_enriched(booking['id']),
            'from_room': RoomModel.get_by_id(req['from_room_id']),
            'to_room': RoomModel.get_by_id(req['to_room_id']),
            'transfer': transfer,
            'warnings': warnings
        }

        StaffModel.log_action(req.get('transfer_staff_id'), 'ROOM_TRANSFER', {
            'booking_number': booking['booking_number'],
            'from_room': (from_room or {}).get('number'),
            'to_room': to_room['number'],
            'reason': req['reason']
        })

        if req.get('notify_guest') or req.get('notify_housekeeping'):
            RoomTransferService._notify(result, req)
        return result

    @staticmethod
    def _notify(result: Dict, req: Dict) -> None:
        try:
            booking = result['booking'] or {}
            guest = booking.get('guest') or {}
            staff = StaffModel.get_by_id(req['transfer_staff_id']) if req.get('transfer_staff_id') else None
            notifications.send_transfer_notifications({
                'transfer_id': result['transfer_id'],
                'booking_id': booking.get('id'),
                'booking_number': booking.get('booking_number'),
                'guest_name': guest.get('name'),
                'guest_email': guest.get('email') if req.get('notify_guest') else None,
                'from_room': (result['from_room'] or {}).get('number'),
                'to_room': (result['to_room'] or {}).get('number'),
                'room_type': ((result['to_room'] or {}).get('room_type') or {}).get('name'),
                'transfer_date': datetime.now().strftime('%Y-%m-%d %H:%M'),
                'reason': req.get('reason'),
                'staff_name': (staff or {}).get('name')
            })
        except Exception as e:
            logger.warning(f"Failed to send transfer notifications: {e}")

    @staticmethod
    def get_available_rooms_for_transfer(booking_id) -> List[Dict]:
        supabase = get_supabase()
        try:
            rows = supabase.rpc('get_available_rooms_for_transfer', {'p_booking_id': booking_id}).execute().data or []
        except Exception as e:
            logger.error(f"Error getting available rooms for transfer: {e}")
            raise
        return [{
            'id': row.get('room_id') or row.get('id'),
            'number': row.get('room_number') or row.get('number'),
            'room_type_id': row.get('room_type_id'),
            'status': row.get('status') or row.get('room_status'),
            'room_type': {
                'name': row.get('room_type_name'),
                'code': row.get('room_type_code'),
                'base_price': row.get('base_price')
            }
        } for row in rows]

    @staticmethod
    def get_transfer_history(booking_id) -> List[Dict]:
        supabase = get_supabase()
        try:
            return supabase.rpc('get_room_transfer_history', {'p_booking_id': booking_id}).execute().data or []
        except Exception as e:
            logger.error(f"Error getting transfer history for {booking_id}: {e}")
            raise

    @staticmethod
    def get_transfer_statistics(start_date=None, end_date=None) -> Dict:
        """Transfers in a period (default last 30 days) counted by reason"""
        end = parse_date(end_date) or datetime.now().date()
        start = parse_date(start_date) or (end - timedelta(days=30))
        supabase = get_supabase()
        transfers = supabase.table('room_transfers').select('*').gte(
            'transfer_date', f"{start.isoformat()}T00:00:00"
        ).lte('transfer_date', f"{end.isoformat()}T23:59:59").order('transfer_date', desc=True).execute().data or []

        by_reason = {}
        for transfer in transfers:
            reason = transfer.get('reason') or 'Other'
            by_reason[reason] = by_reason.get(reason, 0) + 1
        return {
            'total_transfers': len(transfers),
            'transfers_by_reason': by_reason,
            'transfers': transfers
        }
