from flask import Blueprint, jsonify, request, session
from hotel_pms.services.room_transfer_service import RoomTransferService, TRANSFER_REASONS

transfer_bp = Blueprint('room_transfers', __name__)


@transfer_bp.route('/room-transfers', methods=['GET', 'POST'])
def api_room_transfers():
    if request.method == 'GET':
        booking_id = request.args.get('bookingId')
        start_date = request.args.get('startDate')
        end_date = request.args.get('endDate')
        if booking_id:
            return jsonify({
                'success': True,
                'data': RoomTransferService.get_transfer_history(booking_id)
            })
        if start_date or end_date:
            return jsonify({
                'success': True,
                'data': RoomTransferService.get_transfer_statistics(start_date, end_date)
            })
        return jsonify({
            'success': False,
            'error': 'Either bookingId or date range is required'
        }), 400

    data = request.get_json(silent=True) or {}
    missing = [f for f in ('bookingId', 'fromRoomId', 'toRoomId', 'reason') if not data.get(f)]
    if missing:
        return jsonify({
            'success': False,
            'error': f"Missing required fields: {', '.join(missing)}"
        }), 400

    result = RoomTransferService.transfer_room({
        'booking_id': data['bookingId'],
        'from_room_id': data['fromRoomId'],
        'to_room_id': data['toRoomId'],
        'reason': data['reason'],
        'transfer_staff_id': data.get('transferStaffId') or (session.get('user') or {}).get('staff_id'),
        'notify_guest': bool(data.get('notifyGuest')),
        'notify_housekeeping': bool(data.get('notifyHousekeeping'))
    })
    return jsonify({
        'success': True,
        'data': result,
        'message': 'Room transfer completed'
    })


@transfer_bp.route('/room-transfers/available-rooms', methods=['GET'])
def api_transfer_available_rooms():
    booking_id = request.args.get('bookingId')
    if not booking_id:
        return jsonify({
            'success': False,
            'error': 'bookingId is required'
        }), 400
    rooms = RoomTransferService.get_available_rooms_for_transfer(booking_id)
    return jsonify({
        'success': True,
        'data': rooms,
        'count': len(rooms)
    })


@transfer_bp.route('/room-transfers/reasons', methods=['GET'])
def api_transfer_reasons():
    return jsonify({
        'success': True,
        'data': TRANSFER_REASONS
    })
