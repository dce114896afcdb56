import csv
from datetime import date
from io import StringIO

from hotel_pms.reports import export
from conftest import login_as

CHECKIN = {
    'booking_number': 'BK-A',
    'checkin_time': '2030-03-01T13:00:00',
    'expected_checkout': '2030-03-03',
    'booked_on': None,
    'planned_nights': 2,
    'guest_name': 'Asha Rao',
    'number_of_guests': 2,
    'room_number': '101',
    'advance_cash': 1000,
    'advance_total': 1000.0,
    'staff_name': 'Front Desk'
}
CHECKOUT = {
    'booking_number': 'BK-B',
    'checkout_time': '2030-03-03T15:00:00',
    'guest_name': 'John Smith',
    'receipt_card': 7620,
    'receipt_total': 7620.0,
    'full_payment': 7620.0,
    'price_adjustment': -120,
    'checkout_notes': 'Late, paid, happy'
}


def test_export_filename_replaces_slashes():
    assert export.export_filename('01/03/2030', '03/03/2030', 'csv') == \
        'checkin-checkout-report-01-03-2030-to-03-03-2030.csv'


def test_table_rows_number_and_format_times():
    rows = export.table_rows([CHECKIN], export.CHECKIN_COLUMNS)
    headers = [header for header, _ in export.CHECKIN_COLUMNS]
    row = dict(zip(headers, rows[0]))
    assert row['S.No'] == 1
    assert row['Check-in Time'] == '01-03-2030 13:00:00'
    assert row['Expected Checkout'] == '03-03-2030 00:00:00'
    assert row['Booked On'] == 'N/A'
    assert row['Bill #'] == ''


def test_summary_lines():
    assert export.summary_lines([CHECKIN], [CHECKOUT]) == [
        ('Total Check-ins', 1),
        ('Total Check-outs', 1),
        ('Total Advance Payments', '1000.00'),
        ('Total Full Payments', '7620.00'),
        ('Total Price Adjustments', '-120.00'),
        ('Net Revenue', '7500.00')
    ]


def test_build_csv_sections():
    text = export.build_csv([CHECKIN], [CHECKOUT])
    lines = list(csv.reader(StringIO(text)))
    flat = [line[0] for line in lines if line]

    assert flat[0] == 'HOTEL CHECK-IN/CHECK-OUT REPORT'
    assert flat[1].startswith('Generated on: ')
    order = [flat.index(title) for title in ('CHECK-IN REPORT', 'CHECK-OUT REPORT', 'SUMMARY REPORT', 'End of Report')]
    assert order == sorted(order)
    assert 'Net Revenue: 7500.00' in flat

    checkout_row = next(line for line in lines if line and line[1:2] == ['BK-B'])
    assert checkout_row[0] == '1'
    assert 'Late, paid, happy' in checkout_row


def test_build_html_escapes_cells(app):
    risky = {**CHECKIN, 'guest_name': '<b>Asha</b>'}
    with app.app_context():
        html = export.build_html([risky], [], date(2030, 3, 1), date(2030, 3, 3))
    assert 'Period: 01/03/2030 to 03/03/2030' in html
    assert '&lt;b&gt;Asha&lt;/b&gt;' in html
    assert 'No records' in html


def test_export_route(client, fake_db, hotel):
    login_as(client, role='Admin')
    booking = fake_db.seed('bookings', {'booking_number': 'BK-A', 'guest_id': hotel.guest['id'], 'status': 'checked_in'})
    fake_db.seed('booking_rooms', {
        'booking_id': booking['id'], 'room_id': hotel.rooms['101']['id'], 'room_status': 'checked_in',
        'check_in_date': '2030-03-01', 'check_out_date': '2030-03-03', 'actual_check_in': '2030-03-01T13:00:00'
    })

    response = client.get('/api/reports/checkin-checkout/export?fromDate=01/03/2030&toDate=03/03/2030')
    assert response.status_code == 200
    assert response.mimetype == 'text/csv'
    assert response.headers['Content-Disposition'] == \
        'attachment; filename="checkin-checkout-report-01-03-2030-to-03-03-2030.csv"'
    assert 'BK-A' in response.get_data(as_text=True)

    response = client.get('/api/reports/checkin-checkout/export?fromDate=01/03/2030&toDate=03/03/2030&format=html')
    assert response.mimetype == 'text/html'
    assert '<h2>Check-in Report</h2>' in response.get_data(as_text=True)

    response = client.get('/api/reports/checkin-checkout/export?fromDate=01/03/2030&toDate=03/03/2030&format=xlsx')
    assert response.status_code == 400
