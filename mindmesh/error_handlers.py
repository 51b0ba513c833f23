from flask import Blueprint, current_app, jsonify
from flask_wtf.csrf import CSRFError
from google.api_core.exceptions import GoogleAPICallError

from .errors import (
    AppError,
    DuplicateResourceError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)

error_handlers_bp = Blueprint("error_handlers", __name__)


@error_handlers_bp.app_errorhandler(ValidationError)
def handle_validation_error(error):
    """Handles validation errors."""
    current_app.logger.warning(f"Validation Error: {error.message}")
    return jsonify({"error": error.message}), error.status_code


@error_handlers_bp.app_errorhandler(InvalidStateError)
def handle_invalid_state_error(error):
    """Handles business-rule rejections."""
    current_app.logger.warning(f"Invalid State Error: {error.message}")
    return jsonify({"error": error.message}), error.status_code


@error_handlers_bp.app_errorhandler(DuplicateResourceError)
def handle_duplicate_resource_error(error):
    """Handles duplicate resource errors."""
    current_app.logger.warning(f"Duplicate Resource Error: {error.message}")
    return jsonify({"error": error.message}), error.status_code


@error_handlers_bp.app_errorhandler(NotFoundError)
def handle_not_found_error(error):
    """Handles not found errors."""
    current_app.logger.warning(f"Not Found Error: {error.message}")
    return jsonify({"error": error.message}), error.status_code


@error_handlers_bp.app_errorhandler(AppError)
def handle_app_error(error):
    """Handles generic application errors, including auth failures."""
    current_app.logger.error(f"Application Error: {error.message}")
    return jsonify({"error": error.message}), error.status_code


@error_handlers_bp.app_errorhandler(404)
def handle_404(e):
    """Handles generic 404 errors for routes that don't exist."""
    return jsonify({"error": "Not found."}), 404


@error_handlers_bp.app_errorhandler(405)
def handle_405(e):
    """Handles requests with an unsupported method."""
    return jsonify({"error": "Method not allowed."}), 405


@error_handlers_bp.app_errorhandler(500)
def handle_500(e):
    """Handles unexpected server errors."""
    current_app.logger.error(f"Internal Server Error: {e}")
    return jsonify({"error": "An unexpected error occurred."}), 500


@error_handlers_bp.app_errorhandler(GoogleAPICallError)
def handle_db_error(e):
    """Handles database errors."""
    current_app.logger.error(f"Database Error: {e}")
    # Avoid exposing raw database error details to the user
    return (
        jsonify({"error": "A database error occurred. Please try again later."}),
        503,
    )


@error_handlers_bp.app_errorhandler(CSRFError)
def handle_csrf_error(e):
    """Handles CSRF errors, which usually indicate an expired session."""
    current_app.logger.warning(f"CSRF Error: {e.description}")
    return jsonify({"error": "Your session may have expired. Please sign in again."}), 400
