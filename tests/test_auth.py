import pytest

from hotel_pms.errors import AuthError, ValidationError, ConflictError
from hotel_pms.services import auth_service
from conftest import login_as


@pytest.mark.parametrize('path, rule', [
    ('/', auth_service.PUBLIC),
    ('/api/auth/login', auth_service.PUBLIC),
    ('/api/health', auth_service.PUBLIC),
    ('/api/auth/signup', auth_service.DENY),
    ('/api/auth/session', auth_service.AUTHENTICATED),
    ('/api/bookings/12/check-in', auth_service.FRONT_OFFICE_ROLES),
    ('/api/staff-logs', auth_service.ADMIN_ROLES),
    ('/api/staff/3', auth_service.ADMIN_ROLES),
    ('/api/reports/arrival', auth_service.ADMIN_ROLES),
    ('/api/housekeeping/tasks', auth_service.HOUSEKEEPING_ROLES),
    ('/api/meal-plans', auth_service.AUTHENTICATED),
    ('/api/roomsx', auth_service.AUTHENTICATED),
])
def test_access_rule_for(path, rule):
    assert auth_service.access_rule_for(path) == rule


def test_role_helpers():
    owner = {'role': 'Owner'}
    desk = {'role': 'Front Office Staff'}
    cleaner = {'role': 'Housekeeping Staff'}
    assert auth_service.is_admin(owner) and auth_service.is_owner(owner)
    assert not auth_service.is_admin(desk)
    assert auth_service.is_front_office_staff(desk)
    assert not auth_service.is_front_office_staff(cleaner)
    assert auth_service.is_housekeeping_staff(cleaner)
    assert auth_service.can_access_reports({'role': 'Admin'})
    assert not auth_service.can_access_settings(desk)
    assert not auth_service.has_role(None, ('Admin',))



def test_is_allowed_and_permissions():
    manager = {'role': 'Housekeeping Manager'}
    assert auth_service.is_allowed(manager, auth_service.HOUSEKEEPING_ROLES)
    assert not auth_service.is_allowed(manager, auth_service.FRONT_OFFICE_ROLES)
    assert auth_service.is_allowed(manager, auth_service.AUTHENTICATED)
    assert not auth_service.is_allowed(None, auth_service.AUTHENTICATED)

    owner = auth_service.permissions({'role': 'Owner'})
    assert all(owner.values())
    admin = auth_service.permissions({'role': 'Admin'})
    assert admin['owner'] is False and admin['master_data'] is True
    assert auth_service.permissions(manager) == {
        'admin': False, 'owner': False, 'front_office': False, 'housekeeping': True,
        'reports': False, 'staff_management': False, 'settings': False, 'master_data': False
    }


def test_format_time_until_expiry():
    assert auth_service.format_time_until_expiry(0) == '0 minutes'
    assert auth_service.format_time_until_expiry(-5) == '0 minutes'
    assert auth_service.format_time_until_expiry(25 * 60 * 1000) == '25m'
    assert auth_service.format_time_until_expiry((2 * 60 + 5) * 60 * 1000) == '2h 5m'


def test_authenticate_returns_session_user(fake_db, hotel):
    fake_db.auth.add_user('desk@hotel.com', 'secret123')
    user = auth_service.authenticate('desk@hotel.com', 'secret123')
    assert user == {
        'id': 'auth-1',
        'email': 'desk@hotel.com',
        'name': 'Front Desk',
        'role': 'Front Office Staff',
        'staff_id': hotel.staff['id']
    }


def test_authenticate_errors(fake_db, hotel):
    fake_db.auth.add_user('desk@hotel.com', 'secret123')
    with pytest.raises(AuthError, match='Missing email or password'):
        auth_service.authenticate('desk@hotel.com', '')
    with pytest.raises(AuthError, match='Invalid email or password'):
        auth_service.authenticate('desk@hotel.com', 'wrong')
    fake_db.auth.add_user('nobody@hotel.com', 'secret123')
    with pytest.raises(AuthError, match='No profile found'):
        auth_service.authenticate('nobody@hotel.com', 'secret123')


def test_signup_creates_staff_profile(fake_db):
    staff = auth_service.signup({'email': 'Owner@Hotel.com', 'password': 'pw123456', 'name': 'Olga', 'role': 'Owner'})
    assert staff['email'] == 'owner@hotel.com'
    assert staff['status'] == 'active'
    assert staff['permissions'] == ['all']
    assert staff['auth_user_id'] == 'auth-1'

    with pytest.raises(ConflictError):
        auth_service.signup({'email': 'owner@hotel.com', 'password': 'pw', 'name': 'Again', 'role': 'Owner'})
    with pytest.raises(ValidationError, match='Invalid role'):
        auth_service.signup({'email': 'x@hotel.com', 'password': 'pw', 'name': 'X', 'role': 'Chef'})


def test_login_logout_session_flow(client, fake_db, hotel):
    fake_db.auth.add_user('desk@hotel.com', 'secret123')

    assert client.get('/api/auth/session').status_code == 401

    response = client.post('/api/auth/login', json={'email': 'desk@hotel.com', 'password': 'secret123'})
    assert response.status_code == 200
    assert response.get_json()['data']['role'] == 'Front Office Staff'

    session = client.get('/api/auth/session').get_json()['data']
    assert session['user']['email'] == 'desk@hotel.com'
    assert session['expires_in'].startswith('167h')
    assert session['show_warning'] is False
    assert session['permissions']['front_office'] is True
    assert session['permissions']['reports'] is False

    again = client.post('/api/auth/login', json={})
    assert again.get_json()['message'] == 'Already signed in'

    assert client.post('/api/auth/logout').status_code == 200
    assert client.get('/api/auth/session').status_code == 401


def test_login_rejects_bad_password(client, fake_db, hotel):
    fake_db.auth.add_user('desk@hotel.com', 'secret123')
    response = client.post('/api/auth/login', json={'email': 'desk@hotel.com', 'password': 'nope'})
    assert response.status_code == 401
    assert response.get_json() == {'success': False, 'error': 'Invalid email or password'}


def test_guard_enforces_roles(client, hotel):
    assert client.get('/api/rooms').status_code == 401

    login_as(client, role='Housekeeping Staff')
    response = client.get('/api/rooms')
    assert response.status_code == 403
    assert response.get_json()['error'] == 'Insufficient permissions'
    assert client.get('/api/housekeeping/tasks').status_code == 200

    login_as(client, role='Front Office Staff')
    assert client.get('/api/rooms').status_code == 200
    assert client.get('/api/reports/arrival?fromDate=01/01/2024&toDate=02/01/2024').status_code == 403


def test_signup_disabled_by_default(client):
    response = client.post('/api/auth/signup', json={'email': 'a@b.c'})
    assert response.status_code == 403
