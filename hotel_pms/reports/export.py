"""
Downloadable check-in/checkout register (CSV and HTML)
"""
import csv
from datetime import date, datetime
from io import StringIO
from typing import Dict, List
from flask import render_template_string
from hotel_pms.services.date_utils import parse_datetime

RULE = '=' * 120
THIN_RULE = '-' * 120

CHECKIN_COLUMNS = [
    ('S.No', None),
    ('Booking Number', 'booking_number'),
    ('Check-in Time', 'checkin_time'),
    ('Expected Checkout', 'expected_checkout'),
    ('Booked On', 'booked_on'),
    ('Planned Nights', 'planned_nights'),
    ('Guest Name', 'guest_name'),
    ('PAX', 'number_of_guests'),
    ('Child PAX', 'child_guests'),
    ('Extra PAX', 'extra_guests'),
    ('Phone', 'guest_phone'),
    ('Room Number', 'room_number'),
    ('Room Type', 'room_type'),
    ('Arrival Type', 'arrival_type'),
    ('Company/OTA/Agent', 'company_ota_agent'),
    ('Advance Cash', 'advance_cash'),
    ('Advance Card', 'advance_card'),
    ('Advance UPI', 'advance_upi'),
    ('Advance Bank', 'advance_bank'),
    ('Advance Total', 'advance_total'),
    ('Bill #', 'bill_number'),
    ('Staff Name', 'staff_name')
]

CHECKOUT_COLUMNS = [
    ('S.No', None),
    ('Booking Number', 'booking_number'),
    ('Check-out Time', 'checkout_time'),
    ('Guest Name', 'guest_name'),
    ('PAX', 'number_of_guests'),
    ('Child PAX', 'child_guests'),
    ('Extra PAX', 'extra_guests'),
    ('Phone', 'guest_phone'),
    ('Room Number', 'room_number'),
    ('Room Type', 'room_type'),
    ('Arrival Type', 'arrival_type'),
    ('Company/OTA/Agent', 'company_ota_agent'),
    ('Receipt Cash', 'receipt_cash'),
    ('Receipt Card', 'receipt_card'),
    ('Receipt UPI', 'receipt_upi'),
    ('Receipt Bank', 'receipt_bank'),
    ('Receipt Total', 'receipt_total'),
    ('Outstanding', 'outstanding_amount'),
    ('Price Adjustment', 'price_adjustment'),
    ('Notes', 'checkout_notes'),
    ('Bill #', 'bill_number'),
    ('Staff Name', 'staff_name')
]

TIME_FIELDS = {'checkin_time', 'expected_checkout', 'booked_on', 'checkout_time'}

HTML_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>Check-in/Check-out Report {{ period }}</title>
<style>
body { font-family: Arial, sans-serif; font-size: 12px; }
table { border-collapse: collapse; width: 100%; margin-bottom: 24px; }
th, td { border: 1px solid #444; padding: 4px 6px; text-align: left; }
th { background: #eee; }
</style>
</head>
<body>
<h1>Hotel Check-in/Check-out Report</h1>
<p>Period: {{ period }}<br>Generated on: {{ generated }}</p>
{% for section in sections %}
<h2>{{ section.title }}</h2>
<table>
<tr>{% for header in section.headers %}<th>{{ header }}</th>{% endfor %}</tr>
{% for row in section.rows %}<tr>{% for cell in row %}<td>{{ cell }}</td>{% endfor %}</tr>
{% else %}<tr><td colspan="{{ section.headers|length }}">No records</td></tr>
{% endfor %}
</table>
{% endfor %}
<h2>Summary</h2>
<table>
{% for label, value in summary %}<tr><th>{{ label }}</th><td>{{ value }}</td></tr>{% endfor %}
</table>
</body>
</html>
"""


def format_time(value) -> str:
    parsed = parse_datetime(value)
    return parsed.strftime('%d-%m-%Y %H:%M:%S') if parsed else 'N/A'


def table_rows(records: List[Dict], columns) -> List[List]:
    rows = []
    for index, record in enumerate(records):
        row = []
        for _, field in columns:
            if field is None:
                row.append(index + 1)
            elif field in TIME_FIELDS:
                row.append(format_time(record.get(field)))
            else:
                value = record.get(field)
                row.append('' if value is None else value)
        rows.append(row)
    return rows


def summary_lines(checkins: List[Dict], checkouts: List[Dict]) -> List[tuple]:
    full_payments = sum(float(r.get('full_payment') or 0) for r in checkouts)
    adjustments = sum(float(r.get('price_adjustment') or 0) for r in checkouts)
    return [
        ('Total Check-ins', len(checkins)),
        ('Total Check-outs', len(checkouts)),
        ('Total Advance Payments', f"{sum(float(r.get('advance_total') or 0) for r in checkins):.2f}"),
        ('Total Full Payments', f"{full_payments:.2f}"),
        ('Total Price Adjustments', f"{adjustments:.2f}"),
        ('Net Revenue', f"{full_payments + adjustments:.2f}")
    ]


def export_filename(from_date: str, to_date: str, extension: str) -> str:
    return f"checkin-checkout-report-{from_date.replace('/', '-')}-to-{to_date.replace('/', '-')}.{extension}"


def build_csv(checkins: List[Dict], checkouts: List[Dict]) -> str:
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(['HOTEL CHECK-IN/CHECK-OUT REPORT'])
    writer.writerow([f"Generated on: {datetime.now().strftime('%d/%m/%Y %H:%M:%S')}"])
    writer.writerow([RULE])

    for title, records, columns in (
        ('CHECK-IN REPORT', checkins, CHECKIN_COLUMNS),
        ('CHECK-OUT REPORT', checkouts, CHECKOUT_COLUMNS)
    ):
        writer.writerow([])
        writer.writerow([RULE])
        writer.writerow([title])
        writer.writerow([RULE])
        writer.writerow([header for header, _ in columns])
        writer.writerow([THIN_RULE])
        writer.writerows(table_rows(records, columns))

    writer.writerow([])
    writer.writerow([RULE])
    writer.writerow(['SUMMARY REPORT'])
    writer.writerow([RULE])
    for label, value in summary_lines(checkins, checkouts):
        writer.writerow([f"{label}: {value}"])
    writer.writerow([])
    writer.writerow([RULE])
    writer.writerow(['End of Report'])
    writer.writerow([RULE])
    return output.getvalue()


def build_html(checkins: List[Dict], checkouts: List[Dict], start: date, end: date) -> str:
    """Render the register as HTML tables; must run inside an app context"""
    sections = [
        {
            'title': 'Check-in Report',
            'headers': [header for header, _ in CHECKIN_COLUMNS],
            'rows': table_rows(checkins, CHECKIN_COLUMNS)
        },
        {
            'title': 'Check-out Report',
            'headers': [header for header, _ in CHECKOUT_COLUMNS],
            'rows': table_rows(checkouts, CHECKOUT_COLUMNS)
        }
    ]
    return render_template_string(
        HTML_TEMPLATE,
        period=f"{start.strftime('%d/%m/%Y')} to {end.strftime('%d/%m/%Y')}",
        generated=datetime.now().strftime('%d/%m/%Y %H:%M:%S'),
        sections=sections,
        summary=summary_lines(checkins, checkouts)
    )
