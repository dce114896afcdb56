"""
Main Flask Application Entry Point for Hotel PMS
"""
import logging
from flask import Flask, current_app, jsonify, request, session
from flask_session import Session
from hotel_pms.config import Config
from hotel_pms.errors import register_error_handlers
from hotel_pms.services import auth_service

logger = logging.getLogger(__name__)


def check_access():
    """Session and role guard for every /api request"""
    rule = auth_service.access_rule_for(request.path)
    if rule == auth_service.PUBLIC:
        return None
    if rule == auth_service.DENY:
        if current_app.config.get('ALLOW_SIGNUP'):
            return None
        return jsonify({
            'success': False,
            'error': 'Signup is disabled'
        }), 403

    user = session.get('user')
    if not user:
        return jsonify({
            'success': False,
            'error': 'Authentication required'
        }), 401
    if not auth_service.is_allowed(user, rule):
        logger.warning(f"{user.get('email')} ({user.get('role')}) denied {request.method} {request.path}")
        return jsonify({
            'success': False,
            'error': 'Insufficient permissions'
        }), 403
    return None


def create_app(config_object=Config):
    """Application factory pattern"""
    app = Flask(__name__)

    # Load configuration
    app.config.from_object(config_object)
    Session(app)
    register_error_handlers(app)
    app.before_request(check_access)

    # Register blueprints
    from hotel_pms.routes.api_routes import api_bp
    from hotel_pms.routes.auth_routes import auth_bp
    from hotel_pms.routes.checkout_routes import checkout_bp
    from hotel_pms.routes.transfer_routes import transfer_bp
    from hotel_pms.routes.report_routes import report_bp

    for blueprint in (api_bp, auth_bp, checkout_bp, transfer_bp, report_bp):
        app.register_blueprint(blueprint, url_prefix='/api')

    return app


def main():
    logging.basicConfig(
        level=logging.DEBUG if Config.DEBUG else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    # Validate configuration
    Config.validate()

    # Create app
    app = create_app()

    print(f"\n{'='*60}")
    print(f"  Hotel PMS Server Starting")
    print(f"{'='*60}")
    print(f"  Hotel: {Config.HOTEL_INFO['name']}")
    print(f"  Location: {Config.HOTEL_INFO['location']}")
    print(f"  Database: {Config.HOTEL_ID or 'default'}")
    print(f"  Running on: http://{Config.HOST}:{Config.PORT}")
    print(f"  Debug mode: {Config.DEBUG}")
    print(f"{'='*60}\n")

    # Run app
    app.run(
        host=Config.HOST,
        port=Config.PORT,
        debug=Config.DEBUG
    )


if __name__ == '__main__':
    main()
