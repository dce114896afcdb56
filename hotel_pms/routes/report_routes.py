"""
Report endpoints: one JSON endpoint per report plus the register export
"""
import logging
from flask import Blueprint, jsonify, request, Response
from hotel_pms.reports import REPORTS, OPTIONAL_RANGE, parse_report_range, fetch_checkin_rows, fetch_checkout_rows
from hotel_pms.reports import export

logger = logging.getLogger(__name__)

report_bp = Blueprint('reports', __name__)

EXPORT_FORMATS = {
    'csv': 'text/csv; charset=utf-8',
    'html': 'text/html; charset=utf-8'
}


@report_bp.route('/reports/checkin-checkout/export', methods=['GET'])
def api_export_checkin_checkout():
    export_format = request.args.get('format', 'csv').lower()
    if export_format not in EXPORT_FORMATS:
        return jsonify({
            'success': False,
            'error': 'Invalid format. Must be "csv" or "html"'
        }), 400
    from_date = request.args.get('fromDate')
    to_date = request.args.get('toDate')
    start, end = parse_report_range(from_date, to_date)

    checkins = fetch_checkin_rows(start, end)
    checkouts = fetch_checkout_rows(start, end)
    if export_format == 'csv':
        body = export.build_csv(checkins, checkouts)
    else:
        body = export.build_html(checkins, checkouts, start, end)

    filename = export.export_filename(from_date, to_date, export_format)
    logger.info(f"Exported check-in/checkout register {filename}")
    return Response(body, content_type=EXPORT_FORMATS[export_format], headers={
        'Content-Disposition': f'attachment; filename="{filename}"',
        'Cache-Control': 'no-cache, no-store, must-revalidate'
    })


@report_bp.route('/reports/<name>', methods=['GET'])
def api_report(name):
    report = REPORTS.get(name)
    if report is None:
        return jsonify({
            'success': False,
            'error': f"Unknown report: {name}"
        }), 404

    from_date = request.args.get('fromDate')
    to_date = request.args.get('toDate')
    if name in OPTIONAL_RANGE and not from_date and not to_date:
        start = end = None
    else:
        start, end = parse_report_range(from_date, to_date)
    return jsonify(report(start, end, request.args))
