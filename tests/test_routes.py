from datetime import date, timedelta

from conftest import login_as


def future(days):
    return (date.today() + timedelta(days=days)).isoformat()


def test_public_endpoints(client):
    health = client.get('/api/health').get_json()
    assert health['success'] is True
    assert health['status'] == 'ok'
    assert client.get('/api/hotel-info').get_json()['data']['check_out_time'] == '11:00'


def test_api_requires_session(client):
    response = client.get('/api/bookings')
    assert response.status_code == 401
    assert response.get_json() == {'success': False, 'error': 'Authentication required'}


def test_room_endpoints(client, hotel):
    login_as(client, role='Front Office Staff', staff_id=hotel.staff['id'])

    rooms = client.get('/api/rooms').get_json()['data']
    assert [r['number'] for r in rooms] == ['101', '102', '201', '202']
    assert rooms[0]['room_type']['name'] == 'Deluxe'

    response = client.post('/api/rooms', json={'number': '101', 'room_type_id': hotel.deluxe['id']})
    assert response.status_code == 409

    response = client.get('/api/rooms/available')
    assert response.status_code == 400
    assert response.get_json()['error'] == 'check_in and check_out dates required'
    available = client.get(f"/api/rooms/available?check_in={future(1)}&check_out={future(2)}").get_json()
    assert len(available['data']) == 4

    response = client.put(f"/api/rooms/{hotel.rooms['102']['id']}/status", json={'status': 'cleaning'})
    assert response.get_json()['data']['status'] == 'cleaning'
    assert client.put(f"/api/rooms/{hotel.rooms['102']['id']}/status", json={'status': 'gone'}).status_code == 400
    assert client.get('/api/rooms/stats').get_json()['data']['cleaning'] == 1
    assert client.get('/api/rooms/missing').status_code == 404


def test_master_data_is_admin_only(client, hotel):
    login_as(client, role='Front Office Staff')
    assert client.get('/api/room-types').status_code == 403
    assert client.get('/api/staff').status_code == 403

    login_as(client, role='Admin')
    response = client.post('/api/room-types', json={'name': 'Suite', 'code': 'suite', 'base_price': '-1'})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Price must be greater than 0'
    response = client.delete(f"/api/room-types/{hotel.deluxe['id']}")
    assert response.status_code == 409


def test_staff_endpoints(client, fake_db, hotel):
    login_as(client, role='Owner', staff_id=hotel.staff['id'])
    response = client.post('/api/staff', json={'name': 'Mina', 'email': 'mina@hotel.com', 'role': 'Admin'})
    assert response.status_code == 201
    body = response.get_json()
    assert body['data']['email'] == 'mina@hotel.com'
    assert body['password']

    response = client.delete(f"/api/staff/{body['data']['id']}")
    assert response.get_json()['message'] == 'Staff member deleted'
    actions = [log['action'] for log in client.get('/api/staff-logs?limit=5').get_json()['data']]
    assert set(actions) == {'CREATE_STAFF', 'DELETE_STAFF'}
    assert client.get('/api/staff-logs?limit=many').status_code == 400


def test_booking_lifecycle(client, fake_db, hotel):
    login_as(client, role='Front Office Staff', staff_id=hotel.staff['id'])

    response = client.post('/api/bookings', json={'guest': {'name': 'Ravi'}, 'rooms': []})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Guest name and phone are required'
    response = client.post('/api/bookings', json={'guest_id': hotel.guest['id'], 'rooms': []})
    assert response.get_json()['error'] == 'At least one room is required'

    response = client.post('/api/bookings', json={
        'guest_id': hotel.guest['id'],
        'rooms': [{'room_id': hotel.rooms['201']['id'], 'check_in_date': future(0), 'check_out_date': future(1)}],
        'advance': {'card': 2000}
    })
    assert response.status_code == 201
    booking = response.get_json()['data']
    assert booking['staff_id'] == hotel.staff['id']

    listed = client.get('/api/bookings?status=confirmed').get_json()['data']
    assert [b['id'] for b in listed] == [booking['id']]

    updated = client.put(f"/api/bookings/{booking['id']}", json={'special_requests': 'Late arrival'}).get_json()
    assert updated['data']['special_requests'] == 'Late arrival'

    checked_in = client.post(f"/api/bookings/{booking['id']}/check-in").get_json()
    assert checked_in['data']['status'] == 'checked_in'
    assert client.get('/api/guests/checked-in').get_json()['data'][0]['room_number'] == '201'

    response = client.post(f"/api/bookings/{booking['id']}/payments", json={'amount': 500, 'payment_method': 'cash'})
    assert response.status_code == 201
    payments = client.get(f"/api/bookings/{booking['id']}/payments").get_json()['data']
    assert payments['breakdown']['receipt_cash'] == 500.0
    assert len(payments['transactions']) == 2

    checked_out = client.post(f"/api/bookings/{booking['id']}/check-out", json={}).get_json()
    assert checked_out['data']['status'] == 'checked_out'
    assert checked_out['message'] == 'Room checked out'

    assert client.get('/api/housekeeping/tasks').status_code == 403
    login_as(client, role='Housekeeping Manager')
    tasks = client.get('/api/housekeeping/tasks?status=pending')
    assert tasks.get_json()['data'][0]['room_number'] == '201'


def test_cancel_booking_route(client, hotel):
    login_as(client, role='Admin', staff_id=hotel.staff['id'])
    booking = client.post('/api/bookings', json={
        'guest': {'name': 'Ravi', 'phone': '9111111111'},
        'rooms': [{'room_id': hotel.rooms['101']['id'], 'check_in_date': future(4), 'check_out_date': future(6)}]
    }).get_json()['data']

    response = client.delete(f"/api/bookings/{booking['id']}", json={})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Cancellation reason is required'

    response = client.delete(f"/api/bookings/{booking['id']}", json={'reason': 'Duplicate', 'refund_amount': 100})
    assert response.get_json()['data']['status'] == 'cancelled'
    assert client.get('/api/bookings/missing').status_code == 404


def test_conflicting_booking_returns_409(client, hotel):
    login_as(client, role='Admin')
    payload = {
        'guest_id': hotel.guest['id'],
        'rooms': [{'room_id': hotel.rooms['102']['id'], 'check_in_date': future(2), 'check_out_date': future(4)}]
    }
    assert client.post('/api/bookings', json=payload).status_code == 201
    response = client.post('/api/bookings', json=payload)
    assert response.status_code == 409
    assert response.get_json()['success'] is False


def test_guest_endpoints(client, hotel):
    login_as(client, role='Front Office Staff')
    assert client.get('/api/guests/search').status_code == 400
    found = client.get('/api/guests/search?q=asha').get_json()['data']
    assert [g['name'] for g in found] == ['Asha Rao']

    response = client.put(f"/api/guests/{hotel.guest['id']}", json={'address': '4 Marina Rd', 'id': 'other'})
    data = response.get_json()['data']
    assert data['address']['street'] == '4 Marina Rd'
    assert data['id'] == hotel.guest['id']


def test_blocked_room_endpoints(client, hotel):
    login_as(client, role='Front Office Staff', staff_id=hotel.staff['id'])
    assert client.post('/api/blocked-rooms', json={'reason': 'Paint'}).status_code == 400

    response = client.post('/api/blocked-rooms', json={'room_id': hotel.rooms['202']['id'], 'reason': 'Paint'})
    assert response.status_code == 201
    block = response.get_json()['data']
    assert client.get('/api/blocked-rooms').get_json()['data'][0]['room_number'] == '202'

    response = client.post(f"/api/blocked-rooms/{block['id']}/unblock", json={'unblock_reason': 'Done'})
    assert response.get_json()['data']['is_active'] is False


def test_housekeeping_roles(client, fake_db, hotel):
    login_as(client, role='Housekeeping Staff')
    fake_db.seed('housekeeping_tasks', {'room_id': hotel.rooms['101']['id'], 'status': 'pending', 'created_at': 'x'})
    task = client.get('/api/housekeeping/tasks').get_json()['data'][0]
    assert client.put(f"/api/housekeeping/tasks/{task['id']}", json={}).status_code == 400
    response = client.put(f"/api/housekeeping/tasks/{task['id']}", json={'status': 'in_progress'})
    assert response.get_json()['data']['status'] == 'in_progress'
    assert client.get('/api/bookings').status_code == 403


def test_non_numeric_booking_values_are_rejected(client, fake_db, hotel):
    login_as(client, role='Admin', staff_id=hotel.staff['id'])
    rooms = [{'room_id': hotel.rooms['101']['id'], 'check_in_date': future(3), 'check_out_date': future(4)}]

    response = client.post('/api/bookings', json={'guest_id': hotel.guest['id'], 'rooms': rooms, 'number_of_guests': 'two'})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Invalid number_of_guests'
    response = client.post('/api/bookings', json={'guest_id': hotel.guest['id'], 'rooms': rooms, 'advance': {'cash': '1k'}})
    assert response.get_json()['error'] == 'Invalid cash advance'
    assert fake_db.rows('bookings') == []

    booking = client.post('/api/bookings', json={'guest_id': hotel.guest['id'], 'rooms': rooms}).get_json()['data']
    response = client.delete(f"/api/bookings/{booking['id']}", json={'reason': 'Duplicate', 'refund_amount': 'all'})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Invalid refund_amount'
    assert fake_db.get('bookings', booking['id'])['status'] == 'confirmed'
