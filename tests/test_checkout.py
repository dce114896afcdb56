from datetime import datetime, date, timedelta

import pytest

from hotel_pms.database.bookings import BookingModel
from hotel_pms.errors import ValidationError
from hotel_pms.services.checkout_service import CheckoutService, calculate_late_fee, scheduled_checkout
from conftest import login_as

SCHEDULED = datetime(2030, 5, 10, 11, 0)
SETTINGS = {'enabled': True, 'grace_minutes': 60, 'hourly_rate': 100, 'max_fee': 500}


@pytest.mark.parametrize('actual, expected', [
    (SCHEDULED - timedelta(minutes=5), {'is_late': False, 'late_fee': 0.0, 'grace_period_used': False, 'late_minutes': 0}),
    (SCHEDULED + timedelta(minutes=30), {'is_late': True, 'late_fee': 0.0, 'grace_period_used': True, 'late_minutes': 30}),
    (SCHEDULED + timedelta(minutes=60), {'is_late': True, 'late_fee': 0.0, 'grace_period_used': True, 'late_minutes': 60}),
    (SCHEDULED + timedelta(minutes=61), {'is_late': True, 'late_fee': 100.0, 'grace_period_used': False, 'late_minutes': 61}),
    (SCHEDULED + timedelta(hours=3, minutes=30), {'is_late': True, 'late_fee': 300.0, 'grace_period_used': False, 'late_minutes': 210}),
    (SCHEDULED + timedelta(hours=10), {'is_late': True, 'late_fee': 500.0, 'grace_period_used': False, 'late_minutes': 600}),
])
def test_calculate_late_fee(actual, expected):
    assert calculate_late_fee(SCHEDULED, actual, SETTINGS) == expected


@pytest.mark.parametrize('late, fee', [(timedelta(minutes=20), 100.0), (timedelta(hours=3), 300.0), (timedelta(hours=9), 500.0)])
def test_late_fee_without_grace_charges_from_first_minute(late, fee):
    result = calculate_late_fee(SCHEDULED, SCHEDULED + late, {**SETTINGS, 'enabled': False})
    assert result['is_late'] is True
    assert result['grace_period_used'] is False
    assert result['late_fee'] == fee


def test_scheduled_checkout_uses_standard_time_for_bare_dates():
    assert scheduled_checkout('2030-05-10') == SCHEDULED
    assert scheduled_checkout('2030-05-10T14:30:00') == datetime(2030, 5, 10, 14, 30)
    assert scheduled_checkout(None) is None


@pytest.fixture
def stay(hotel):
    """A checked-in one night stay in room 101 leaving tomorrow"""
    booking = BookingModel.create_with_rooms({
        'guest_id': hotel.guest['id'],
        'rooms': [{'room_id': hotel.rooms['101']['id'],
                   'check_in_date': date.today().isoformat(),
                   'check_out_date': (date.today() + timedelta(days=1)).isoformat()}],
        'staff_id': hotel.staff['id']
    })
    BookingModel.check_in(booking['id'])
    return booking


def tomorrow_at(hour, minute=0):
    return datetime.combine(date.today() + timedelta(days=1), datetime.min.time()).replace(hour=hour, minute=minute)


def test_late_checkout_charges_and_records(fake_db, hotel, stay):
    result = CheckoutService.process_checkout({
        'booking_id': stay['id'],
        'actual_check_out_date': tomorrow_at(13, 30).isoformat(),
        'final_amount': 3810,
        'remaining_balance': 1000,
        'payment_method': 'upi',
        'collected_by': hotel.staff['id'],
        'notes': 'Minibar settled'
    })

    assert result['success'] is True
    assert result['is_late_checkout'] is True
    assert result['late_fee'] == 200.0
    assert result['grace_period_used'] is False
    booking = result['data']
    assert booking['status'] == 'checked_out'
    assert booking['checkout_notes'] == 'Minibar settled'
    assert booking['payment_breakdown']['total_amount'] == 4010.0
    assert booking['payment_breakdown']['outstanding_amount'] == 1000.0
    assert booking['booking_rooms'][0]['room_status'] == 'checked_out'
    assert fake_db.get('rooms', hotel.rooms['101']['id'])['status'] == 'available'

    charge = fake_db.rows('late_checkout_charges')[0]
    assert charge['late_minutes'] == 150
    assert charge['charge_amount'] == 200.0
    receipt = [t for t in fake_db.rows('payment_transactions') if t['transaction_type'] == 'receipt'][0]
    assert receipt['amount'] == 1000.0
    assert receipt['payment_method'] == 'upi'
    alert = fake_db.rows('checkout_notifications')[0]
    assert alert['notification_type'] == 'late_charges'
    assert alert['is_active'] is True
    assert fake_db.rows('staff_logs')[-1]['action'] == 'checkout_processed'


def test_checkout_within_grace_period(fake_db, stay):
    result = CheckoutService.process_checkout({
        'booking_id': stay['id'],
        'actual_check_out_date': tomorrow_at(11, 45).isoformat()
    })
    assert result['grace_period_used'] is True
    assert result['late_fee'] == 0.0
    assert fake_db.rows('grace_period_tracker')[0]['grace_minutes_used'] == 45
    assert fake_db.rows('late_checkout_charges') == []
    assert fake_db.rows('checkout_notifications')[0]['notification_type'] == 'grace_period'


def test_on_time_checkout_leaves_inactive_notice(fake_db, stay):
    result = CheckoutService.process_checkout({
        'booking_id': stay['id'],
        'actual_check_out_date': tomorrow_at(10).isoformat()
    })
    assert result['is_late_checkout'] is False
    alert = fake_db.rows('checkout_notifications')[0]
    assert alert['notification_type'] == 'checkout_completed'
    assert alert['is_active'] is False
    assert CheckoutService.get_active_checkout_alerts() == []


def test_checkout_rejects_closed_booking(stay):
    CheckoutService.process_checkout({'booking_id': stay['id'], 'actual_check_out_date': tomorrow_at(10).isoformat()})
    with pytest.raises(ValidationError, match='not in a valid state'):
        CheckoutService.process_checkout({'booking_id': stay['id'], 'actual_check_out_date': tomorrow_at(10).isoformat()})


def test_checkout_route_rejects_non_numeric_amounts(client, fake_db, hotel, stay):
    login_as(client, role='Front Office Staff', staff_id=hotel.staff['id'])
    response = client.post('/api/checkout/process', json={
        'bookingId': stay['id'],
        'actualCheckOutDate': tomorrow_at(11).isoformat(),
        'finalAmount': 'abc'
    })
    assert response.status_code == 400
    assert response.get_json() == {'success': False, 'error': 'Invalid finalAmount'}
    assert fake_db.get('bookings', stay['id'])['status'] == 'checked_in'


def test_checkout_route_maps_camel_case_fields(client, hotel, stay):
    login_as(client, role='Front Office Staff', staff_id=hotel.staff['id'])

    response = client.post('/api/checkout/process', json={'bookingId': stay['id']})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Missing required field: actualCheckOutDate'
    response = client.post('/api/checkout/process', json={'bookingId': 'missing', 'actualCheckOutDate': tomorrow_at(11).isoformat()})
    assert response.status_code == 404
    assert response.get_json()['error'] == 'Booking not found'

    response = client.post('/api/checkout/process', json={
        'bookingId': stay['id'],
        'actualCheckOutDate': tomorrow_at(11).isoformat(),
        'finalAmount': 3810
    })
    body = response.get_json()
    assert response.status_code == 200
    assert body['success'] is True
    assert body['data']['status'] == 'checked_out'


def test_checkout_route_requires_front_office(client, stay):
    login_as(client, role='Housekeeping Staff')
    response = client.post('/api/checkout/process', json={'bookingId': stay['id']})
    assert response.status_code == 403


def seed_checked_in(fake_db, hotel, number, check_out_date):
    booking = fake_db.seed('bookings', {
        'booking_number': f"BK-{number}", 'guest_id': hotel.guest['id'], 'status': 'checked_in'
    })
    fake_db.seed('booking_rooms', {
        'booking_id': booking['id'], 'room_id': hotel.rooms[number]['id'], 'room_status': 'checked_in',
        'check_in_date': (date.today() - timedelta(days=1)).isoformat(), 'check_out_date': check_out_date
    })
    return booking


def test_automated_notifications_created_once(fake_db, hotel):
    soon = seed_checked_in(fake_db, hotel, '101', (datetime.now() + timedelta(minutes=90)).isoformat())
    late = seed_checked_in(fake_db, hotel, '102', (date.today() - timedelta(days=1)).isoformat())
    seed_checked_in(fake_db, hotel, '201', (date.today() + timedelta(days=3)).isoformat())

    assert CheckoutService.process_automated_notifications() == {'approaching': 1, 'overdue': 1}
    alerts = {a['booking_id']: a for a in CheckoutService.get_active_checkout_alerts()}
    assert alerts[soon['id']]['notification_type'] == 'approaching'
    assert alerts[soon['id']]['room_number'] == '101'
    assert alerts[late['id']]['notification_type'] == 'overdue'
    assert 'Asha Rao' in alerts[late['id']]['message']

    assert CheckoutService.process_automated_notifications() == {'approaching': 0, 'overdue': 0}


def test_dismiss_and_approaching_routes(client, fake_db, hotel):
    login_as(client, role='Admin', staff_id=hotel.staff['id'])
    seed_checked_in(fake_db, hotel, '101', (datetime.now() + timedelta(minutes=30)).isoformat())

    response = client.get('/api/checkout/approaching?hours=1')
    data = response.get_json()['data']
    assert [stay['room_number'] for stay in data] == ['101']
    assert 0 <= data[0]['minutes_remaining'] <= 30
    assert client.get('/api/checkout/approaching?hours=soon').status_code == 400

    client.post('/api/checkout/notifications')
    alert = client.get('/api/checkout/notifications').get_json()['data'][0]
    response = client.post(f"/api/checkout/notifications/{alert['id']}/dismiss")
    assert response.get_json()['data']['dismissed_by'] == hotel.staff['id']
    assert client.get('/api/checkout/notifications').get_json()['data'] == []
    assert client.post('/api/checkout/notifications/missing/dismiss').status_code == 404


def test_checkout_statistics_fall_back_to_tables(fake_db, stay):
    CheckoutService.process_checkout({
        'booking_id': stay['id'],
        'actual_check_out_date': tomorrow_at(14).isoformat()
    })
    stats = CheckoutService.get_checkout_statistics(
        date.today().isoformat(), (date.today() + timedelta(days=1)).isoformat()
    )
    assert stats['total_checkouts'] == 1
    assert stats['late_checkouts'] == 1
    assert stats['total_late_fees'] == 200.0
    assert stats['grace_period_uses'] == 0


def test_checkout_statistics_prefer_database_function(fake_db):
    fake_db.rpc_handlers['get_checkout_statistics'] = lambda db, params: [{'total_checkouts': 7}]
    assert CheckoutService.get_checkout_statistics('2030-01-01', '2030-01-31') == {'total_checkouts': 7}
    assert fake_db.rpc_calls[-1][1] == {'p_start_date': '2030-01-01', 'p_end_date': '2030-01-31'}
