from flask import Blueprint, jsonify, request, session
from hotel_pms.services.checkout_service import CheckoutService

checkout_bp = Blueprint('checkout', __name__)

# JSON body key -> checkout request field
CHECKOUT_FIELDS = {
    'bookingId': 'booking_id',
    'actualCheckOutDate': 'actual_check_out_date',
    'finalAmount': 'final_amount',
    'priceAdjustment': 'price_adjustment',
    'remainingBalance': 'remaining_balance',
    'paymentMethod': 'payment_method',
    'collectedBy': 'collected_by',
    'notes': 'notes'
}


@checkout_bp.route('/checkout/process', methods=['POST'])
def api_process_checkout():
    data = request.get_json(silent=True) or {}
    for field in ('bookingId', 'actualCheckOutDate'):
        if not data.get(field):
            return jsonify({
                'success': False,
                'error': f"Missing required field: {field}"
            }), 400

    checkout_request = {target: data.get(source) for source, target in CHECKOUT_FIELDS.items()}
    if not checkout_request['collected_by']:
        checkout_request['collected_by'] = (session.get('user') or {}).get('staff_id')
    result = CheckoutService.process_checkout(checkout_request)
    if not result.get('success'):
        return jsonify(result), 400
    return jsonify(result)


@checkout_bp.route('/checkout/notifications', methods=['GET', 'POST'])
def api_checkout_notifications():
    if request.method == 'GET':
        return jsonify({
            'success': True,
            'data': CheckoutService.get_active_checkout_alerts()
        })
    return jsonify({
        'success': True,
        'data': CheckoutService.process_automated_notifications()
    })


@checkout_bp.route('/checkout/notifications/<notification_id>/dismiss', methods=['POST'])
def api_dismiss_checkout_notification(notification_id):
    staff_id = (session.get('user') or {}).get('staff_id')
    return jsonify({
        'success': True,
        'data': CheckoutService.dismiss_notification(notification_id, staff_id)
    })


@checkout_bp.route('/checkout/statistics', methods=['GET'])
def api_checkout_statistics():
    return jsonify({
        'success': True,
        'data': CheckoutService.get_checkout_statistics(
            request.args.get('startDate'), request.args.get('endDate')
        )
    })


@checkout_bp.route('/checkout/approaching', methods=['GET'])
def api_approaching_checkouts():
    try:
        hours = int(request.args.get('hours', 2))
    except ValueError:
        return jsonify({
            'success': False,
            'error': 'Invalid hours'
        }), 400
    return jsonify({
        'success': True,
        'data': CheckoutService.get_approaching_checkouts(hours)
    })
