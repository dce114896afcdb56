"""
Login, logout, session status and signup
"""
import logging
from datetime import datetime
from flask import Blueprint, jsonify, request, session, current_app
from hotel_pms.services import auth_service

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/auth/login', methods=['POST'])
def api_login():
    if session.get('user'):
        return jsonify({
            'success': True,
            'data': session['user'],
            'message': 'Already signed in'
        })
    data = request.get_json(silent=True) or {}
    user = auth_service.authenticate(data.get('email'), data.get('password'))
    session.clear()
    session.permanent = True
    session['user'] = user
    session['login_at'] = datetime.now().timestamp()
    return jsonify({
        'success': True,
        'data': user
    })


@auth_bp.route('/auth/logout', methods=['POST'])
def api_logout():
    user = session.get('user') or {}
    session.clear()
    logger.info(f"Staff {user.get('email')} signed out")
    return jsonify({
        'success': True,
        'message': 'Signed out'
    })


@auth_bp.route('/auth/session', methods=['GET'])
def api_session():
    lifetime = current_app.permanent_session_lifetime.total_seconds()
    elapsed = datetime.now().timestamp() - session.get('login_at', datetime.now().timestamp())
    remaining_ms = max(0, (lifetime - elapsed) * 1000)
    warning_ms = current_app.config.get('SESSION_WARNING_MINUTES', 15) * 60 * 1000
    return jsonify({
        'success': True,
        'data': {
            'user': session['user'],
            'permissions': auth_service.permissions(session['user']),
            'expires_in': auth_service.format_time_until_expiry(remaining_ms),
            'show_warning': 0 < remaining_ms <= warning_ms
        }
    })


@auth_bp.route('/auth/signup', methods=['POST'])
def api_signup():
    staff = auth_service.signup(request.get_json(silent=True) or {})
    return jsonify({
        'success': True,
        'data': staff
    }), 201
