"""
Master data models for Hotel PMS
Room types, rooms, guests, staff, meal plans and housekeeping tasks
"""
import secrets
from datetime import datetime, timedelta, date
from typing import List, Dict, Optional, Iterable
from hotel_pms.database.db import get_supabase, get_admin_supabase
from hotel_pms.errors import ValidationError, NotFoundError, ConflictError
from hotel_pms.services.date_utils import do_dates_overlap, parse_date
import logging

logger = logging.getLogger(__name__)

ROOM_STATUSES = ['available', 'occupied', 'maintenance', 'cleaning', 'blocked']
ACTIVE_ROOM_STATUSES = ['reserved', 'checked_in']


def fetch_by_ids(table: str, ids: Iterable, column: str = 'id') -> Dict:
    """Load rows whose column is in ids, keyed by that column"""
    unique_ids = list({i for i in ids if i is not None})
    if not unique_ids:
        return {}
    supabase = get_supabase()
    response = supabase.table(table).select('*').in_(column, unique_ids).execute()
    return {row[column]: row for row in (response.data or [])}


def fetch_grouped(table: str, column: str, ids: Iterable) -> Dict[object, List[Dict]]:
    """Load rows whose column is in ids, grouped into lists by that column"""
    unique_ids = list({i for i in ids if i is not None})
    grouped = {}
    if not unique_ids:
        return grouped
    supabase = get_supabase()
    response = supabase.table(table).select('*').in_(column, unique_ids).execute()
    for row in response.data or []:
        grouped.setdefault(row[column], []).append(row)
    return grouped


def first(response) -> Optional[Dict]:
    return response.data[0] if response.data else None


class RoomTypeModel:
    """Room type database operations"""

    @staticmethod
    def get_all() -> List[Dict]:
        """Active room types ordered by code, one per code"""
        supabase = get_supabase()
        response = supabase.table('room_types').select('*').eq('is_active', True).order('code').execute()
        seen = set()
        unique = []
        for room_type in response.data or []:
            if room_type.get('code') in seen:
                continue
            seen.add(room_type.get('code'))
            unique.append(room_type)
        return unique

    @staticmethod
    def get_by_id(room_type_id) -> Optional[Dict]:
        supabase = get_supabase()
        return first(supabase.table('room_types').select('*').eq('id', room_type_id).execute())

    @staticmethod
    def create(data: Dict) -> Dict:
        for field in ('name', 'code', 'base_price'):
            if data.get(field) in (None, ''):
                raise ValidationError(f"Missing required field: {field}")
        try:
            base_price = float(data['base_price'])
        except (TypeError, ValueError):
            raise ValidationError('Invalid price format')
        if base_price <= 0:
            raise ValidationError('Price must be greater than 0')

        supabase = get_supabase()
        record = {
            'name': data['name'],
            'code': data['code'],
            'base_price': base_price,
            'max_pax': data.get('max_pax', 2),
            'description': data.get('description', ''),
            'amenities': data.get('amenities', []),
            'is_active': True,
            'created_at': datetime.now().isoformat()
        }
        try:
            response = supabase.table('room_types').insert(record).execute()
            return first(response)
        except Exception as e:
            logger.error(f"Error creating room type: {e}")
            raise

    @staticmethod
    def update(room_type_id, data: Dict) -> Optional[Dict]:
        if not RoomTypeModel.get_by_id(room_type_id):
            raise NotFoundError('Room type not found')
        allowed = {k: v for k, v in data.items()
                   if k in ('name', 'code', 'base_price', 'max_pax', 'description', 'amenities')}
        allowed['updated_at'] = datetime.now().isoformat()
        supabase = get_supabase()
        return first(supabase.table('room_types').update(allowed).eq('id', room_type_id).execute())

    @staticmethod
    def delete(room_type_id) -> Dict:
        """Soft delete; refused while rooms still use the type"""
        if not RoomTypeModel.get_by_id(room_type_id):
            raise NotFoundError('Room type not found')
        supabase = get_supabase()
        rooms = supabase.table('rooms').select('id').eq('room_type_id', room_type_id).execute()
        if rooms.data:
            raise ConflictError(
                f"Cannot delete room type: {len(rooms.data)} room(s) are still assigned to it"
            )
        return first(supabase.table('room_types').update({
            'is_active': False,
            'updated_at': datetime.now().isoformat()
        }).eq('id', room_type_id).execute())


class RoomModel:
    """Room database operations"""

    @staticmethod
    def _attach_room_types(rooms: List[Dict]) -> List[Dict]:
        types = fetch_by_ids('room_types', [r.get('room_type_id') for r in rooms])
        for room in rooms:
            room['room_type'] = types.get(room.get('room_type_id'))
        return rooms

    @staticmethod
    def get_all() -> List[Dict]:
        """Get all rooms with their room type"""
        try:
            supabase = get_supabase()
            response = supabase.table('rooms').select('*').order('number').execute()
            return RoomModel._attach_room_types(response.data or [])
        except Exception as e:
            logger.error(f"Error getting rooms: {e}")
            raise

    @staticmethod
    def get_by_id(room_id) -> Optional[Dict]:
        supabase = get_supabase()
        room = first(supabase.table('rooms').select('*').eq('id', room_id).execute())
        if room:
            RoomModel._attach_room_types([room])
        return room

    @staticmethod
    def get_by_number(number) -> Optional[Dict]:
        supabase = get_supabase()
        return first(supabase.table('rooms').select('*').eq('number', str(number)).execute())

    @staticmethod
    def create(data: Dict) -> Dict:
        if not data.get('number') or not data.get('room_type_id'):
            raise ValidationError('Room number and room type are required')
        if RoomModel.get_by_number(data['number']):
            raise ConflictError(f"Room number {data['number']} already exists")
        room_type = RoomTypeModel.get_by_id(data['room_type_id'])
        if not room_type:
            raise NotFoundError('Room type not found')

        record = {
            'number': str(data['number']),
            'room_type_id': data['room_type_id'],
            'floor': data.get('floor'),
            'status': data.get('status', 'available'),
            'price': data.get('price') or room_type.get('base_price'),
            'amenities': data.get('amenities', []),
            'created_at': datetime.now().isoformat()
        }
        supabase = get_supabase()
        try:
            return first(supabase.table('rooms').insert(record).execute())
        except Exception as e:
            logger.error(f"Error creating room {data['number']}: {e}")
            raise

    @staticmethod
    def update(room_id, data: Dict) -> Optional[Dict]:
        """Update room details"""
        room = RoomModel.get_by_id(room_id)
        if not room:
            raise NotFoundError('Room not found')
        if room['status'] == 'occupied' and set(data) - {'status'}:
            raise ConflictError('Cannot update room while it is occupied')
        if 'status' in data and data['status'] not in ROOM_STATUSES:
            raise ValidationError('Invalid status')
        if 'number' in data and str(data['number']) != str(room['number']):
            if RoomModel.get_by_number(data['number']):
                raise ConflictError(f"Room number {data['number']} already exists")

        update_data = {k: v for k, v in data.items()
                       if k in ('number', 'room_type_id', 'floor', 'status', 'price', 'amenities')}
        update_data['updated_at'] = datetime.now().isoformat()
        supabase = get_supabase()
        return first(supabase.table('rooms').update(update_data).eq('id', room_id).execute())

    @staticmethod
    def update_status(room_id, status: str) -> Optional[Dict]:
        if status not in ROOM_STATUSES:
            raise ValidationError('Invalid status')
        supabase = get_supabase()
        return first(supabase.table('rooms').update({
            'status': status,
            'updated_at': datetime.now().isoformat()
        }).eq('id', room_id).execute())

    @staticmethod
    def delete(room_id) -> None:
        room = RoomModel.get_by_id(room_id)
        if not room:
            raise NotFoundError('Room not found')
        if room['status'] == 'occupied':
            raise ConflictError('Cannot delete room while it is occupied')
        supabase = get_supabase()
        bookings = supabase.table('booking_rooms').select('id').eq('room_id', room_id).limit(1).execute()
        if bookings.data:
            raise ConflictError('Cannot delete room with existing bookings')
        supabase.table('rooms').delete().eq('id', room_id).execute()

    @staticmethod
    def get_stats() -> Dict:
        supabase = get_supabase()
        rooms = supabase.table('rooms').select('id, status').execute().data or []
        stats = {status: 0 for status in ROOM_STATUSES}
        for room in rooms:
            stats[room.get('status')] = stats.get(room.get('status'), 0) + 1
        stats['total'] = len(rooms)
        return stats

    @staticmethod
    def get_available_rooms(check_in: str, check_out: str, room_type_id=None) -> List[Dict]:
        """Rooms free of overlapping reserved/checked-in stays for the dates"""
        start = parse_date(check_in)
        end = parse_date(check_out)
        if start is None or end is None:
            raise ValidationError('Invalid date format')
        if end <= start:
            raise ValidationError('Check-out must be after check-in')

        supabase = get_supabase()
        query = supabase.table('rooms').select('*')
        if room_type_id:
            query = query.eq('room_type_id', room_type_id)
        rooms = [r for r in (query.execute().data or [])
                 if r.get('status') not in ('maintenance', 'blocked')]

        stays = supabase.table('booking_rooms').select(
            'room_id, check_in_date, check_out_date'
        ).in_('room_status', ACTIVE_ROOM_STATUSES).execute().data or []

        busy = set()
        for stay in stays:
            if do_dates_overlap(start, end, stay['check_in_date'], stay['check_out_date']):
                busy.add(stay['room_id'])

        return RoomModel._attach_room_types([r for r in rooms if r['id'] not in busy])


class GuestModel:
    """Guest database operations"""

    @staticmethod
    def normalize_address(address) -> Dict:
        if isinstance(address, dict):
            return address
        if isinstance(address, str) and address.strip():
            return {'street': address.strip(), 'city': '', 'state': '', 'country': 'India', 'pincode': ''}
        return {'street': '', 'city': '', 'state': '', 'country': 'India', 'pincode': ''}

    @staticmethod
    def get_all() -> List[Dict]:
        """Guests de-duplicated by phone/email with their latest booking"""
        supabase = get_supabase()
        guests = supabase.table('guests').select('*').order('created_at', desc=True).execute().data or []

        unique = []
        seen_keys = set()
        for guest in guests:
            key = guest.get('phone') or guest.get('email') or guest['id']
            if key in seen_keys:
                continue
            seen_keys.add(key)
            guest['address'] = GuestModel.normalize_address(guest.get('address'))
            unique.append(guest)

        if unique:
            bookings = supabase.table('bookings').select(
                'id, guest_id, booking_number, status, created_at'
            ).in_('guest_id', [g['id'] for g in unique]).order('created_at', desc=True).execute().data or []
            latest = {}
            for booking in bookings:
                latest.setdefault(booking['guest_id'], booking)
            for guest in unique:
                guest['latest_booking'] = latest.get(guest['id'])

        return unique

    @staticmethod
    def get_by_id(guest_id) -> Optional[Dict]:
        """Get guest by ID"""
        try:
            supabase = get_supabase()
            guest = first(supabase.table('guests').select('*').eq('id', guest_id).execute())
        except Exception as e:
            logger.error(f"Error getting guest {guest_id}: {e}")
            raise
        if guest:
            guest['address'] = GuestModel.normalize_address(guest.get('address'))
        return guest

    @staticmethod
    def find_by_phone(phone: str) -> Optional[Dict]:
        if not phone:
            return None
        supabase = get_supabase()
        return first(supabase.table('guests').select('*').eq('phone', phone).limit(1).execute())

    @staticmethod
    def create(guest_data: Dict) -> Dict:
        """Create new guest"""
        if not guest_data.get('name'):
            raise ValidationError('Guest name is required')
        if not guest_data.get('phone'):
            raise ValidationError('Guest phone is required')

        data = {
            'name': guest_data['name'],
            'email': guest_data.get('email'),
            'phone': guest_data['phone'],
            'address': GuestModel.normalize_address(guest_data.get('address')),
            'nationality': guest_data.get('nationality', 'Indian'),
            'id_type': guest_data.get('id_type'),
            'id_number': guest_data.get('id_number'),
            'passport_number': guest_data.get('passport_number'),
            'arrival_from': guest_data.get('arrival_from'),
            'created_at': datetime.now().isoformat()
        }
        supabase = get_supabase()
        try:
            response = supabase.table('guests').insert(data).execute()
            return first(response)
        except Exception as e:
            logger.error(f"Error creating guest: {e}")
            raise

    @staticmethod
    def get_or_create(guest_data: Dict) -> Dict:
        existing = GuestModel.find_by_phone(guest_data.get('phone'))
        if existing:
            return existing
        return GuestModel.create(guest_data)

    @staticmethod
    def update(guest_id, data: Dict) -> Optional[Dict]:
        if not GuestModel.get_by_id(guest_id):
            raise NotFoundError('Guest not found')
        allowed = {k: v for k, v in data.items() if k in (
            'name', 'email', 'phone', 'address', 'nationality', 'id_type', 'id_number',
            'passport_number', 'arrival_from'
        )}
        if 'address' in allowed:
            allowed['address'] = GuestModel.normalize_address(allowed['address'])
        allowed['updated_at'] = datetime.now().isoformat()
        supabase = get_supabase()
        return first(supabase.table('guests').update(allowed).eq('id', guest_id).execute())

    @staticmethod
    def search(term: str) -> List[Dict]:
        supabase = get_supabase()
        pattern = f"%{term}%"
        found = {}
        for column in ('name', 'phone', 'email'):
            for guest in supabase.table('guests').select('*').ilike(column, pattern).execute().data or []:
                found[guest['id']] = guest
        return list(found.values())

    @staticmethod
    def get_checked_in_guests() -> List[Dict]:
        """Currently checked-in guests with their room"""
        supabase = get_supabase()
        stays = supabase.table('booking_rooms').select('*').eq('room_status', 'checked_in').execute().data or []
        bookings = fetch_by_ids('bookings', [s['booking_id'] for s in stays])
        guests = fetch_by_ids('guests', [b.get('guest_id') for b in bookings.values()])
        rooms = fetch_by_ids('rooms', [s['room_id'] for s in stays])

        checked_in = []
        for stay in stays:
            booking = bookings.get(stay['booking_id'])
            guest = guests.get(booking.get('guest_id')) if booking else None
            room = rooms.get(stay['room_id'])
            if not (booking and guest and room):
                continue
            checked_in.append({
                'guest_id': guest['id'],
                'guest_name': guest['name'],
                'guest_phone': guest.get('phone'),
                'room_id': room['id'],
                'room_number': room['number'],
                'booking_id': booking['id'],
                'booking_number': booking.get('booking_number'),
                'check_in': stay.get('actual_check_in') or stay['check_in_date'],
                'check_out': stay['check_out_date']
            })
        return checked_in


class StaffModel:
    """Staff accounts, audit logs"""

    @staticmethod
    def get_all() -> List[Dict]:
        supabase = get_supabase()
        return supabase.table('staff').select('*').order('name').execute().data or []

    @staticmethod
    def get_by_id(staff_id) -> Optional[Dict]:
        supabase = get_supabase()
        return first(supabase.table('staff').select('*').eq('id', staff_id).execute())

    @staticmethod
    def get_by_auth_user(auth_user_id) -> Optional[Dict]:
        supabase = get_supabase()
        return first(supabase.table('staff').select('id, role, email, name').eq(
            'auth_user_id', auth_user_id
        ).execute())

    @staticmethod
    def generate_password(requested: Optional[str] = None) -> str:
        if requested and len(requested) >= 8:
            return requested
        return secrets.token_urlsafe(9) + 'A1!'

    @staticmethod
    def create(data: Dict) -> Dict:
        """
        Create a staff member and, when a service key is configured, the
        matching auth user.
        Returns:
            dict: {'staff': row, 'password': temporary password}
        """
        for field in ('name', 'email', 'role'):
            if not data.get(field):
                raise ValidationError('Name, email, and role are required.')

        supabase = get_supabase()
        email = data['email'].strip().lower()
        existing = supabase.table('staff').select('id').eq('email', email).execute()
        if existing.data:
            raise ConflictError('A staff member with this email already exists.')

        password = StaffModel.generate_password(data.get('password'))
        auth_user_id = None
        admin = get_admin_supabase()
        if admin is not None:
            created = admin.auth.admin.create_user({
                'email': email,
                'password': password,
                'email_confirm': True,
                'user_metadata': {'name': data['name'], 'role': data['role']}
            })
            auth_user_id = created.user.id
        else:
            logger.warning(f"No service key configured; staff {email} created without a login")

        record = {
            'auth_user_id': auth_user_id,
            'name': data['name'],
            'email': email,
            'phone': data.get('phone'),
            'role': data['role'],
            'department': data.get('department'),
            'status': 'active',
            'join_date': date.today().isoformat(),
            'permissions': StaffModel.default_permissions(data['role'])
        }
        staff = first(supabase.table('staff').insert(record).execute())
        return {'staff': staff, 'password': password}

    @staticmethod
    def default_permissions(role: str) -> List[str]:
        return ['all'] if role in ('Owner', 'Admin') else ['bookings', 'checkin', 'rooms']

    @staticmethod
    def update(staff_id, data: Dict) -> Optional[Dict]:
        if not StaffModel.get_by_id(staff_id):
            raise NotFoundError('Staff member not found')
        allowed = {k: v for k, v in data.items()
                   if k in ('name', 'phone', 'role', 'department', 'status', 'permissions')}
        allowed['updated_at'] = datetime.now().isoformat()
        supabase = get_supabase()
        return first(supabase.table('staff').update(allowed).eq('id', staff_id).execute())

    @staticmethod
    def delete(staff_id) -> None:
        if not StaffModel.get_by_id(staff_id):
            raise NotFoundError('Staff member not found')
        supabase = get_supabase()
        active = supabase.table('bookings').select('id').eq('staff_id', staff_id).in_(
            'status', ['confirmed', 'checked_in']
        ).execute()
        if active.data:
            raise ConflictError('Cannot delete staff member with active bookings')
        tasks = supabase.table('housekeeping_tasks').select('id').eq('assigned_to', staff_id).in_(
            'status', ['pending', 'in_progress']
        ).execute()
        if tasks.data:
            raise ConflictError('Cannot delete staff member with assigned housekeeping tasks')
        supabase.table('staff').delete().eq('id', staff_id).execute()

    @staticmethod
    def get_logs(limit: int = 100) -> List[Dict]:
        supabase = get_supabase()
        logs = supabase.table('staff_logs').select('*').order('created_at', desc=True).limit(limit).execute().data or []
        staff = fetch_by_ids('staff', [log.get('staff_id') for log in logs])
        for log in logs:
            log['staff_name'] = staff.get(log.get('staff_id'), {}).get('name', 'Unknown')
        return logs

    @staticmethod
    def log_action(staff_id, action: str, details: Dict) -> None:
        """Record an audit entry; failures are logged, never raised"""
        if not staff_id:
            return
        try:
            supabase = get_supabase()
            supabase.table('staff_logs').insert({
                'staff_id': staff_id,
                'action': action,
                'details': details,
                'created_at': datetime.now().isoformat()
            }).execute()
        except Exception as e:
            logger.warning(f"Staff log not written for {action}: {e}")


class MealPlanModel:

    @staticmethod
    def get_all() -> List[Dict]:
        supabase = get_supabase()
        return supabase.table('meal_plans').select('*').order('name').execute().data or []

    @staticmethod
    def find_by_name(name: str) -> Optional[Dict]:
        supabase = get_supabase()
        return first(supabase.table('meal_plans').select('id, name').ilike('name', name).limit(1).execute())


class HousekeepingModel:
    """Housekeeping task queue"""

    STATUSES = ['pending', 'in_progress', 'completed']

    @staticmethod
    def create_checkout_tasks(room_ids: List, booking_number: str) -> None:
        """One cleaning task per vacated room, due in an hour"""
        if not room_ids:
            return
        now = datetime.now()
        tasks = [{
            'room_id': room_id,
            'task_type': 'checkout_cleaning',
            'status': 'pending',
            'priority': 'high',
            'notes': f"Room needs cleaning after checkout. Booking: {booking_number}",
            'assigned_to': None,
            'created_at': now.isoformat(),
            'due_by': (now + timedelta(hours=1)).isoformat()
        } for room_id in room_ids]
        try:
            get_supabase().table('housekeeping_tasks').insert(tasks).execute()
        except Exception as e:
            logger.warning(f"Failed to create housekeeping tasks: {e}")

    @staticmethod
    def get_tasks(status: Optional[str] = None) -> List[Dict]:
        supabase = get_supabase()
        query = supabase.table('housekeeping_tasks').select('*')
        if status:
            query = query.eq('status', status)
        tasks = query.order('created_at', desc=True).execute().data or []
        rooms = fetch_by_ids('rooms', [t.get('room_id') for t in tasks])
        for task in tasks:
            task['room_number'] = rooms.get(task.get('room_id'), {}).get('number')
        return tasks

    @staticmethod
    def update_status(task_id, status: str, staff_id=None) -> Optional[Dict]:
        if status not in HousekeepingModel.STATUSES:
            raise ValidationError('Invalid status')
        supabase = get_supabase()
        task = first(supabase.table('housekeeping_tasks').select('*').eq('id', task_id).execute())
        if not task:
            raise NotFoundError('Task not found')

        update_data = {'status': status, 'updated_at': datetime.now().isoformat()}
        if staff_id:
            update_data['assigned_to'] = staff_id
        if status == 'completed':
            update_data['completed_at'] = datetime.now().isoformat()
        updated = first(supabase.table('housekeeping_tasks').update(update_data).eq('id', task_id).execute())

        if status == 'completed' and task.get('room_id'):
            room = RoomModel.get_by_id(task['room_id'])
            if room and room['status'] == 'cleaning':
                RoomModel.update_status(room['id'], 'available')
        return updated
