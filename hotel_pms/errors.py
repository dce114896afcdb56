"""
Domain exceptions and their JSON rendering
"""
import logging
from flask import jsonify, request
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class PMSError(Exception):
    """Base error; status_code is used as the HTTP status"""
    status_code = 500

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def __str__(self):
        return self.message


class ValidationError(PMSError):
    status_code = 400


class NotFoundError(PMSError):
    status_code = 404


class ConflictError(PMSError):
    status_code = 409


class AuthError(PMSError):
    status_code = 401


class ForbiddenError(PMSError):
    status_code = 403


def register_error_handlers(app):
    """Render PMSError and unexpected API failures as JSON"""

    @app.errorhandler(PMSError)
    def handle_pms_error(e):
        if e.status_code >= 500:
            logger.error(f"Error handling {request.path}: {e}")
        return jsonify({
            'success': False,
            'error': str(e)
        }), e.status_code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        if isinstance(e, HTTPException):
            return e
        logger.error(f"Unhandled error on {request.path}: {e}")
        return jsonify({
            'success': False,
            'error': str(e) or 'Internal server error'
        }), 500
