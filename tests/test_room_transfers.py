from datetime import datetime, date, timedelta

import pytest

from hotel_pms.database.bookings import BookingModel
from hotel_pms.errors import ValidationError, NotFoundError
from hotel_pms.services.room_transfer_service import RoomTransferService, validate_transfer_rules
from conftest import login_as

MORNING = datetime(2030, 1, 1, 10, 0)


@pytest.mark.parametrize('from_type, to_type, when, count, rate, errors, warnings', [
    ('Deluxe', 'Suite', MORNING, 0, 0, [], []),
    ('Standard', 'Suite', MORNING, 0, 0, ['Transfer from Standard to Suite is not allowed'], []),
    ('Penthouse', 'Standard', MORNING, 0, 0, [], []),
    ('Deluxe', 'Deluxe', MORNING, 3, 0, ['Maximum transfers per booking (3) exceeded'], []),
    ('Deluxe', 'Deluxe', MORNING.replace(hour=23), 0, 0, ['Transfers are only allowed between 6:00 and 22:00'], []),
    ('Deluxe', 'Suite', MORNING, 0, 10, [], ['Rate increase requires manager approval']),
    ('Deluxe', 'Suite', MORNING, 0, 50,
     [], ['Rate increase requires manager approval', 'Rate increase of 50% exceeds 20%']),
])
def test_validate_transfer_rules(from_type, to_type, when, count, rate, errors, warnings):
    assert validate_transfer_rules(from_type, to_type, when, count, rate) == (errors, warnings)


@pytest.fixture
def booking(hotel):
    created = BookingModel.create_with_rooms({
        'guest_id': hotel.guest['id'],
        'rooms': [{'room_id': hotel.rooms['101']['id'],
                   'check_in_date': date.today().isoformat(),
                   'check_out_date': (date.today() + timedelta(days=2)).isoformat()}]
    })
    BookingModel.check_in(created['id'])
    return created


def request_for(hotel, booking, **overrides):
    req = {
        'booking_id': booking['id'],
        'from_room_id': hotel.rooms['101']['id'],
        'to_room_id': hotel.rooms['102']['id'],
        'reason': 'Noise complaint'
    }
    req.update(overrides)
    return req


def test_validate_request_checks_in_order(fake_db, hotel, booking):
    with pytest.raises(ValidationError, match='Missing required fields'):
        RoomTransferService.validate_transfer_request(request_for(hotel, booking, to_room_id=None))
    with pytest.raises(ValidationError, match='Source and target rooms cannot be the same'):
        RoomTransferService.validate_transfer_request(
            request_for(hotel, booking, to_room_id=hotel.rooms['101']['id'], reason=''))
    with pytest.raises(ValidationError, match='Transfer reason is required'):
        RoomTransferService.validate_transfer_request(request_for(hotel, booking, reason=''))
    with pytest.raises(NotFoundError, match='Booking not found'):
        RoomTransferService.validate_transfer_request(request_for(hotel, booking, booking_id='missing'))
    with pytest.raises(ValidationError, match='Source room is not associated with this booking'):
        RoomTransferService.validate_transfer_request(
            request_for(hotel, booking, from_room_id=hotel.rooms['201']['id']))
    with pytest.raises(NotFoundError, match='Target room not found'):
        RoomTransferService.validate_transfer_request(request_for(hotel, booking, to_room_id='missing'))

    fake_db.get('rooms', hotel.rooms['102']['id'])['status'] = 'cleaning'
    with pytest.raises(ValidationError, match=r'Room 102 is not available \(Status: cleaning\)'):
        RoomTransferService.validate_transfer_request(request_for(hotel, booking))


def test_validate_request_rejects_closed_booking(fake_db, hotel, booking):
    fake_db.get('bookings', booking['id'])['status'] = 'checked_out'
    with pytest.raises(ValidationError, match='Cannot transfer rooms for a booking with status: checked_out'):
        RoomTransferService.validate_transfer_request(request_for(hotel, booking))


def process_room_transfer(db, params):
    """Stand-in for the database function: move the stay and record the transfer"""
    transfer = db.seed('room_transfers', {
        'booking_id': params['p_booking_id'],
        'from_room_id': params['p_from_room_id'],
        'to_room_id': params['p_to_room_id'],
        'reason': params['p_reason'],
        'transfer_staff_id': params['p_transfer_staff_id'],
        'transfer_date': datetime.now().isoformat(),
        'status': 'completed'
    })
    for leg in db.rows('booking_rooms'):
        if leg['booking_id'] == params['p_booking_id'] and leg['room_id'] == params['p_from_room_id']:
            leg['room_id'] = params['p_to_room_id']
    db.get('rooms', params['p_from_room_id'])['status'] = 'cleaning'
    db.get('rooms', params['p_to_room_id'])['status'] = 'occupied'
    return transfer['id']


def test_transfer_room_runs_database_function(fake_db, hotel, booking):
    fake_db.rpc_handlers['process_room_transfer'] = process_room_transfer

    result = RoomTransferService.transfer_room(
        request_for(hotel, booking, transfer_staff_id=hotel.staff['id']), now=MORNING
    )

    assert result['transfer']['reason'] == 'Noise complaint'
    assert result['transfer_id'] == result['transfer']['id']
    assert result['from_room']['status'] == 'cleaning'
    assert result['to_room']['status'] == 'occupied'
    assert result['booking']['booking_rooms'][0]['room_number'] == '102'
    assert result['warnings'] == []
    name, params = fake_db.rpc_calls[-1]
    assert name == 'process_room_transfer'
    assert params['p_transfer_staff_id'] == hotel.staff['id']
    assert fake_db.rows('staff_logs')[-1]['action'] == 'ROOM_TRANSFER'
    assert fake_db.rows('transfer_notifications') == []


def test_upgrade_outside_compatibility_is_refused(fake_db, hotel, booking):
    fake_db.rpc_handlers['process_room_transfer'] = process_room_transfer
    fake_db.get('room_types', hotel.deluxe['id'])['name'] = 'Standard'
    fake_db.get('room_types', hotel.suite['id'])['name'] = 'Suite'
    with pytest.raises(ValidationError, match='Transfer from Standard to Suite is not allowed'):
        RoomTransferService.transfer_room(
            request_for(hotel, booking, to_room_id=hotel.rooms['201']['id']), now=MORNING
        )
    assert fake_db.rpc_calls == []


def test_upgrade_carries_rate_warnings(fake_db, hotel, booking):
    fake_db.rpc_handlers['process_room_transfer'] = process_room_transfer
    fake_db.get('room_types', hotel.suite['id'])['name'] = 'Suite'
    result = RoomTransferService.transfer_room(
        request_for(hotel, booking, to_room_id=hotel.rooms['201']['id']), now=MORNING
    )
    assert result['warnings'] == ['Rate increase requires manager approval', 'Rate increase of 100% exceeds 20%']


def test_transfer_notifications_are_queued(fake_db, hotel, booking):
    fake_db.rpc_handlers['process_room_transfer'] = process_room_transfer
    RoomTransferService.transfer_room(
        request_for(hotel, booking, notify_guest=True, notify_housekeeping=True,
                    transfer_staff_id=hotel.staff['id']),
        now=MORNING
    )
    stored = fake_db.rows('transfer_notifications')
    assert [n['type'] for n in stored] == [
        'guest_notification', 'housekeeping_notification', 'management_notification'
    ]
    assert stored[0]['recipient'] == 'asha@example.com'
    assert 'From Room: 101' in stored[0]['message']
    assert 'Transferred By: Front Desk' in stored[2]['message']
    assert all(n['status'] == 'pending' for n in stored)


def test_available_rooms_for_transfer_are_reshaped(fake_db):
    fake_db.rpc_handlers['get_available_rooms_for_transfer'] = lambda db, params: [{
        'room_id': '9', 'room_number': '305', 'room_type_id': '2', 'room_status': 'available',
        'room_type_name': 'Deluxe', 'room_type_code': 'deluxe', 'base_price': 3000
    }]
    assert RoomTransferService.get_available_rooms_for_transfer('1') == [{
        'id': '9', 'number': '305', 'room_type_id': '2', 'status': 'available',
        'room_type': {'name': 'Deluxe', 'code': 'deluxe', 'base_price': 3000}
    }]


def test_transfer_statistics_count_by_reason(fake_db):
    today = date.today().isoformat()
    for reason in ('Noise complaint', 'Noise complaint', None):
        fake_db.seed('room_transfers', {'booking_id': '1', 'reason': reason, 'transfer_date': f"{today}T10:00:00"})
    fake_db.seed('room_transfers', {'booking_id': '1', 'reason': 'Old', 'transfer_date': '2001-01-01T10:00:00'})

    stats = RoomTransferService.get_transfer_statistics(today, today)
    assert stats['total_transfers'] == 3
    assert stats['transfers_by_reason'] == {'Noise complaint': 2, 'Other': 1}


def test_transfer_routes(client, fake_db, hotel):
    login_as(client, role='Front Office Staff', staff_id=hotel.staff['id'])

    assert client.get('/api/room-transfers').status_code == 400
    response = client.post('/api/room-transfers', json={'bookingId': '1', 'reason': 'Other'})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Missing required fields: fromRoomId, toRoomId'
    response = client.post('/api/room-transfers', json={
        'bookingId': 'missing', 'fromRoomId': hotel.rooms['101']['id'],
        'toRoomId': hotel.rooms['102']['id'], 'reason': 'Other'
    })
    assert response.status_code == 404
    assert response.get_json() == {'success': False, 'error': 'Booking not found'}

    fake_db.rpc_handlers['get_room_transfer_history'] = lambda db, params: [{'booking_id': params['p_booking_id']}]
    history = client.get('/api/room-transfers?bookingId=42').get_json()
    assert history['data'] == [{'booking_id': '42'}]

    assert client.get('/api/room-transfers/available-rooms').status_code == 400
    reasons = client.get('/api/room-transfers/reasons').get_json()['data']
    assert 'Guest request' in reasons and reasons[-1] == 'Other'
