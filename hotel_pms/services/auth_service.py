"""
Staff authentication and role-based access rules
"""
import logging
from datetime import date
from typing import Dict, Iterable, Optional
from hotel_pms.database.db import get_supabase
from hotel_pms.database.models import StaffModel, first
from hotel_pms.errors import AuthError, ValidationError, ConflictError

logger = logging.getLogger(__name__)

OWNER = 'Owner'
ADMIN = 'Admin'
FRONT_OFFICE = 'Front Office Staff'
HOUSEKEEPING_MANAGER = 'Housekeeping Manager'
HOUSEKEEPING_STAFF = 'Housekeeping Staff'

ADMIN_ROLES = (ADMIN, OWNER)
FRONT_OFFICE_ROLES = (FRONT_OFFICE, ADMIN, OWNER)
HOUSEKEEPING_ROLES = (HOUSEKEEPING_MANAGER, HOUSEKEEPING_STAFF, ADMIN, OWNER)

SIGNUP_ROLES = ('Owner', 'Admin', 'Employee')

# Access rules, matched by path prefix in order
PUBLIC = 'public'
DENY = 'deny'
AUTHENTICATED = 'authenticated'

PATH_RULES = [
    ('/api/auth/login', PUBLIC),
    ('/api/auth/signup', DENY),
    ('/api/hotel-info', PUBLIC),
    ('/api/health', PUBLIC),
    ('/api/auth', AUTHENTICATED),
    ('/api/rooms', FRONT_OFFICE_ROLES),
    ('/api/bookings', FRONT_OFFICE_ROLES),
    ('/api/guests', FRONT_OFFICE_ROLES),
    ('/api/checkout', FRONT_OFFICE_ROLES),
    ('/api/room-transfers', FRONT_OFFICE_ROLES),
    ('/api/blocked-rooms', FRONT_OFFICE_ROLES),
    ('/api/payments', FRONT_OFFICE_ROLES),
    ('/api/staff-logs', ADMIN_ROLES),
    ('/api/staff', ADMIN_ROLES),
    ('/api/room-types', ADMIN_ROLES),
    ('/api/settings', ADMIN_ROLES),
    ('/api/hotels', ADMIN_ROLES),
    ('/api/reports', ADMIN_ROLES),
    ('/api/housekeeping', HOUSEKEEPING_ROLES),
]


def has_role(user: Optional[Dict], roles: Iterable[str]) -> bool:
    return bool(user) and user.get('role') in roles


def is_admin(user) -> bool:
    return has_role(user, ADMIN_ROLES)


def is_owner(user) -> bool:
    return has_role(user, (OWNER,))


def is_front_office_staff(user) -> bool:
    return has_role(user, FRONT_OFFICE_ROLES)


def is_housekeeping_staff(user) -> bool:
    return has_role(user, HOUSEKEEPING_ROLES)


def can_access_reports(user) -> bool:
    return is_admin(user)


def can_access_staff_management(user) -> bool:
    return is_admin(user)


def can_access_settings(user) -> bool:
    return is_admin(user)


def can_access_master_data(user) -> bool:
    return is_admin(user)


# role tuple used in PATH_RULES -> the helper that checks it
ROLE_CHECKS = {
    ADMIN_ROLES: is_admin,
    FRONT_OFFICE_ROLES: is_front_office_staff,
    HOUSEKEEPING_ROLES: is_housekeeping_staff,
}


def is_allowed(user: Optional[Dict], rule) -> bool:
    if rule == AUTHENTICATED:
        return bool(user)
    check = ROLE_CHECKS.get(rule)
    return check(user) if check else has_role(user, rule)


def permissions(user: Optional[Dict]) -> Dict[str, bool]:
    """Capability flags a client uses to decide which screens to offer"""
    return {
        'admin': is_admin(user),
        'owner': is_owner(user),
        'front_office': is_front_office_staff(user),
        'housekeeping': is_housekeeping_staff(user),
        'reports': can_access_reports(user),
        'staff_management': can_access_staff_management(user),
        'settings': can_access_settings(user),
        'master_data': can_access_master_data(user)
    }


def access_rule_for(path: str):
    """
    Rule for a request path: PUBLIC, DENY, AUTHENTICATED or a tuple of roles.
    Paths outside /api are public; the JSON API is the only guarded surface.
    """
    if not path.startswith('/api'):
        return PUBLIC
    for prefix, rule in PATH_RULES:
        if path == prefix or path.startswith(prefix + '/'):
            return rule
    return AUTHENTICATED


def format_time_until_expiry(milliseconds: float) -> str:
    if milliseconds <= 0:
        return '0 minutes'
    total_minutes = int(milliseconds // 60000)
    hours, minutes = divmod(total_minutes, 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


def authenticate(email: Optional[str], password: Optional[str]) -> Dict:
    """
    Verify credentials with Supabase auth and load the staff profile.
    Returns:
        dict: session user {id, email, name, role, staff_id}
    """
    if not email or not password:
        raise AuthError('Missing email or password')

    supabase = get_supabase()
    try:
        response = supabase.auth.sign_in_with_password({'email': email, 'password': password})
    except Exception as e:
        logger.warning(f"Sign-in failed for {email}: {e}")
        raise AuthError('Invalid email or password')

    user = getattr(response, 'user', None)
    if user is None:
        raise AuthError('Invalid email or password')

    staff = StaffModel.get_by_auth_user(user.id)
    if not staff:
        raise AuthError('No profile found. Please sign up first.')

    logger.info(f"Staff {staff['email']} signed in as {staff['role']}")
    return {
        'id': user.id,
        'email': staff.get('email') or email,
        'name': staff.get('name'),
        'role': staff.get('role'),
        'staff_id': staff['id']
    }


def signup(data: Dict) -> Dict:
    """Create an auth user plus its staff profile"""
    for field in ('email', 'password', 'name', 'role'):
        if not data.get(field):
            raise ValidationError('Email, password, name, and role are required')
    if data['role'] not in SIGNUP_ROLES:
        raise ValidationError(f"Invalid role. Must be one of: {', '.join(SIGNUP_ROLES)}")

    supabase = get_supabase()
    email = data['email'].strip().lower()
    existing = supabase.table('staff').select('id').eq('email', email).execute()
    if existing.data:
        raise ConflictError('A staff member with this email already exists.')

    try:
        response = supabase.auth.sign_up({
            'email': email,
            'password': data['password'],
            'options': {'data': {'name': data['name'], 'role': data['role']}}
        })
    except Exception as e:
        logger.error(f"Error signing up {email}: {e}")
        raise ValidationError(str(e))

    user = getattr(response, 'user', None)
    if user is None:
        raise ValidationError('Signup failed')

    staff = first(supabase.table('staff').insert({
        'auth_user_id': user.id,
        'name': data['name'],
        'email': email,
        'phone': data.get('phone'),
        'role': data['role'],
        'status': 'active',
        'join_date': date.today().isoformat(),
        'permissions': StaffModel.default_permissions(data['role'])
    }).execute())
    return staff
