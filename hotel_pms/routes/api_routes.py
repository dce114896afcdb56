from flask import Blueprint, jsonify, request, session
from datetime import datetime
from hotel_pms.database import (
RoomTypeModel, RoomModel, GuestModel, StaffModel, MealPlanModel, HousekeepingModel,
BookingModel, PaymentModel, BlockedRoomModel
)
from hotel_pms.database import hotels
from hotel_pms.config import Config

api_bp = Blueprint('api', __name__)


def current_staff_id():
    return (session.get('user') or {}).get('staff_id')


def json_body():
    return request.get_json(silent=True) or {}


@api_bp.route('/hotel-info', methods=['GET'])
def api_hotel_info():
    # Get hotel information
    return jsonify({
        'success': True,
        'data': Config.HOTEL_INFO
    })


@api_bp.route('/health', methods=['GET'])
def api_health():
    return jsonify({
        'success': True,
        'status': 'ok',
        'hotel_id': Config.HOTEL_ID,
        'timestamp': datetime.now().isoformat()
    })


@api_bp.route('/room-types', methods=['GET', 'POST'])
def api_room_types():
    if request.method == 'GET':
        return jsonify({
            'success': True,
            'data': RoomTypeModel.get_all()
        })
    room_type = RoomTypeModel.create(json_body())
    return jsonify({
        'success': True,
        'data': room_type
    }), 201


@api_bp.route('/room-types/<room_type_id>', methods=['GET', 'PUT', 'DELETE'])
def api_room_type_detail(room_type_id):
    room_type = RoomTypeModel.get_by_id(room_type_id)
    if not room_type:
        return jsonify({
            'success': False,
            'error': 'Room type not found'
        }), 404
    if request.method == 'GET':
        return jsonify({
            'success': True,
            'data': room_type
        })
    if request.method == 'PUT':
        return jsonify({
            'success': True,
            'data': RoomTypeModel.update(room_type_id, json_body()),
            'message': 'Room type updated successfully'
        })
    RoomTypeModel.delete(room_type_id)
    return jsonify({
        'success': True,
        'message': 'Room type deleted'
    })


@api_bp.route('/rooms', methods=['GET', 'POST'])
def api_rooms():
    # Get all rooms with their room type
    if request.method == 'GET':
        return jsonify({
            'success': True,
            'data': RoomModel.get_all()
        })
    room = RoomModel.create(json_body())
    return jsonify({
        'success': True,
        'data': room
    }), 201


@api_bp.route('/rooms/stats', methods=['GET'])
def api_room_stats():
    return jsonify({
        'success': True,
        'data': RoomModel.get_stats()
    })


@api_bp.route('/rooms/available', methods=['GET'])
def api_available_rooms():
    # Get available rooms for dates
    check_in = request.args.get('check_in')
    check_out = request.args.get('check_out')
    if not check_in or not check_out:
        return jsonify({
            'success': False,
            'error': 'check_in and check_out dates required'
        }), 400
    available = RoomModel.get_available_rooms(check_in, check_out, request.args.get('room_type_id'))
    return jsonify({
        'success': True,
        'data': available
    })


@api_bp.route('/rooms/<room_id>', methods=['GET', 'PUT', 'DELETE'])
def api_room_detail(room_id):
    # Get, update or delete a specific room
    room = RoomModel.get_by_id(room_id)
    if not room:
        return jsonify({
            'success': False,
            'error': 'Room not found'
        }), 404
    if request.method == 'GET':
        return jsonify({
            'success': True,
            'data': room
        })
    if request.method == 'PUT':
        RoomModel.update(room_id, json_body())
        return jsonify({
            'success': True,
            'data': RoomModel.get_by_id(room_id),
            'message': 'Room updated successfully'
        })
    RoomModel.delete(room_id)
    return jsonify({
        'success': True,
        'message': 'Room deleted'
    })


@api_bp.route('/rooms/<room_id>/status', methods=['PUT'])
def api_room_status(room_id):
    status = json_body().get('status')
    if not status:
        return jsonify({
            'success': False,
            'error': 'status is required'
        }), 400
    if not RoomModel.get_by_id(room_id):
        return jsonify({
            'success': False,
            'error': 'Room not found'
        }), 404
    return jsonify({
        'success': True,
        'data': RoomModel.update_status(room_id, status)
    })


@api_bp.route('/guests', methods=['GET', 'POST'])
def api_guests():
    if request.method == 'GET':
        return jsonify({
            'success': True,
            'data': GuestModel.get_all()
        })
    return jsonify({
        'success': True,
        'data': GuestModel.create(json_body())
    }), 201


@api_bp.route('/guests/checked-in', methods=['GET'])
def api_checked_in_guests():
    # Get checked-in guests
    return jsonify({
        'success': True,
        'data': GuestModel.get_checked_in_guests()
    })


@api_bp.route('/guests/search', methods=['GET'])
def api_guest_search():
    term = (request.args.get('q') or '').strip()
    if not term:
        return jsonify({
            'success': False,
            'error': 'Search term is required'
        }), 400
    return jsonify({
        'success': True,
        'data': GuestModel.search(term)
    })


@api_bp.route('/guests/<guest_id>', methods=['GET', 'PUT'])
def api_guest_detail(guest_id):
    guest = GuestModel.get_by_id(guest_id)
    if not guest:
        return jsonify({
            'success': False,
            'error': 'Guest not found'
        }), 404
    if request.method == 'GET':
        return jsonify({
            'success': True,
            'data': guest
        })
    return jsonify({
        'success': True,
        'data': GuestModel.update(guest_id, json_body()),
        'message': 'Guest updated successfully'
    })


@api_bp.route('/staff', methods=['GET', 'POST'])
def api_staff():
    if request.method == 'GET':
        return jsonify({
            'success': True,
            'data': StaffModel.get_all()
        })
    created = StaffModel.create(json_body())
    StaffModel.log_action(current_staff_id(), 'CREATE_STAFF', {'email': created['staff'].get('email')})
    return jsonify({
        'success': True,
        'data': created['staff'],
        'password': created['password']
    }), 201


@api_bp.route('/staff/<staff_id>', methods=['GET', 'PUT', 'DELETE'])
def api_staff_detail(staff_id):
    member = StaffModel.get_by_id(staff_id)
    if not member:
        return jsonify({
            'success': False,
            'error': 'Staff member not found'
        }), 404
    if request.method == 'GET':
        return jsonify({
            'success': True,
            'data': member
        })
    if request.method == 'PUT':
        return jsonify({
            'success': True,
            'data': StaffModel.update(staff_id, json_body()),
            'message': 'Staff member updated successfully'
        })
    StaffModel.delete(staff_id)
    StaffModel.log_action(current_staff_id(), 'DELETE_STAFF', {'staff_id': staff_id, 'email': member.get('email')})
    return jsonify({
        'success': True,
        'message': 'Staff member deleted'
    })


@api_bp.route('/staff-logs', methods=['GET'])
def api_staff_logs():
    try:
        limit = int(request.args.get('limit', 100))
    except ValueError:
        return jsonify({
            'success': False,
            'error': 'Invalid limit'
        }), 400
    return jsonify({
        'success': True,
        'data': StaffModel.get_logs(limit)
    })


@api_bp.route('/meal-plans', methods=['GET'])
def api_meal_plans():
    return jsonify({
        'success': True,
        'data': MealPlanModel.get_all()
    })


@api_bp.route('/bookings', methods=['GET', 'POST'])
def api_bookings():
    # Get all bookings or create new
    if request.method == 'GET':
        return jsonify({
            'success': True,
            'data': BookingModel.get_all(request.args.get('status'))
        })
    data = json_body()
    guest = data.get('guest') or {}
    if not data.get('guest_id') and (not guest.get('name') or not guest.get('phone')):
        return jsonify({
            'success': False,
            'error': 'Guest name and phone are required'
        }), 400
    if not data.get('rooms'):
        return jsonify({
            'success': False,
            'error': 'At least one room is required'
        }), 400
    data.setdefault('staff_id', current_staff_id())
    booking = BookingModel.create_with_rooms(data)
    return jsonify({
        'success': True,
        'data': booking
    }), 201


@api_bp.route('/bookings/stats', methods=['GET'])
def api_booking_stats():
    return jsonify({
        'success': True,
        'data': BookingModel.get_stats()
    })


@api_bp.route('/bookings/<booking_id>', methods=['GET', 'PUT', 'DELETE'])
def api_booking_detail(booking_id):
    # Get, update, or cancel booking
    booking = BookingModel.get_enriched(booking_id)
    if not booking:
        return jsonify({
            'success': False,
            'error': 'Booking not found'
        }), 404
    if request.method == 'GET':
        return jsonify({
            'success': True,
            'data': booking
        })
    data = json_body()
    if request.method == 'PUT':
        return jsonify({
            'success': True,
            'data': BookingModel.update(booking_id, data),
            'message': 'Booking updated successfully'
        })
    reason = data.get('reason') or request.args.get('reason')
    if not reason:
        return jsonify({
            'success': False,
            'error': 'Cancellation reason is required'
        }), 400
    result = BookingModel.cancel(booking_id, reason, current_staff_id(), data.get('refund_amount'))
    return jsonify({
        'success': True,
        'data': result,
        'message': 'Booking cancelled'
    })


@api_bp.route('/bookings/<booking_id>/check-in', methods=['POST'])
def api_booking_check_in(booking_id):
    data = json_body()
    booking = BookingModel.check_in(booking_id, current_staff_id(), data.get('actual_check_in'))
    return jsonify({
        'success': True,
        'data': booking,
        'message': 'Guest checked in'
    })


@api_bp.route('/bookings/<booking_id>/check-out', methods=['POST'])
def api_booking_check_out(booking_id):
    data = json_body()
    result = BookingModel.check_out_room(
        booking_id, data.get('room_id'), data.get('actual_check_out'), current_staff_id()
    )
    return jsonify({
        'success': True,
        'data': result['booking'],
        'days_difference': result['days_difference'],
        'message': 'Room checked out'
    })


@api_bp.route('/bookings/<booking_id>/payments', methods=['GET', 'POST'])
def api_booking_payments(booking_id):
    if request.method == 'GET':
        return jsonify({
            'success': True,
            'data': {
                'breakdown': PaymentModel.get_breakdown(booking_id),
                'transactions': PaymentModel.get_transactions(booking_id)
            }
        })
    data = json_body()
    transaction = PaymentModel.add_transaction(
        booking_id,
        data.get('amount'),
        data.get('payment_method'),
        data.get('transaction_type', 'receipt'),
        data.get('collected_by') or current_staff_id(),
        data.get('notes', '')
    )
    return jsonify({
        'success': True,
        'data': transaction
    }), 201


@api_bp.route('/blocked-rooms', methods=['GET', 'POST'])
def api_blocked_rooms():
    if request.method == 'GET':
        return jsonify({
            'success': True,
            'data': BlockedRoomModel.get_active()
        })
    data = json_body()
    if not data.get('room_id'):
        return jsonify({
            'success': False,
            'error': 'room_id is required'
        }), 400
    block = BlockedRoomModel.block(
        data['room_id'], data.get('reason'), current_staff_id(),
        data.get('blocked_from_date'), data.get('blocked_to_date'), data.get('notes')
    )
    return jsonify({
        'success': True,
        'data': block
    }), 201


@api_bp.route('/blocked-rooms/<block_id>/unblock', methods=['POST'])
def api_unblock_room(block_id):
    data = json_body()
    return jsonify({
        'success': True,
        'data': BlockedRoomModel.unblock(block_id, current_staff_id(), data.get('unblock_reason')),
        'message': 'Room unblocked'
    })


@api_bp.route('/housekeeping/tasks', methods=['GET'])
def api_housekeeping_tasks():
    return jsonify({
        'success': True,
        'data': HousekeepingModel.get_tasks(request.args.get('status'))
    })


@api_bp.route('/housekeeping/tasks/<task_id>', methods=['PUT'])
def api_housekeeping_task_update(task_id):
    status = json_body().get('status')
    if not status:
        return jsonify({
            'success': False,
            'error': 'status is required'
        }), 400
    return jsonify({
        'success': True,
        'data': HousekeepingModel.update_status(task_id, status, current_staff_id())
    })


@api_bp.route('/hotels', methods=['GET'])
def api_hotels():
    return jsonify({
        'success': True,
        'data': hotels.get_available_hotels()
    })


@api_bp.route('/hotels/<hotel_id>/setup', methods=['POST'])
def api_hotel_setup(hotel_id):
    return jsonify({
        'success': True,
        'data': hotels.create_hotel_tables(hotel_id)
    })
