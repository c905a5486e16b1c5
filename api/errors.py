from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError
from sqlalchemy.exc import IntegrityError
import logging

from models.errors import DuplicateKeyError
from services.errors import ServiceError

logger = logging.getLogger(__name__)

_HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    415: "UNSUPPORTED_MEDIA_TYPE",
    422: "VALIDATION_ERROR",
}


def error_response(error: str, message: str, status: int, details: dict | None = None):
    payload = {"error": error, "message": message, "status": status}
    if details:
        payload["details"] = details
    return jsonify(payload), status


def register_error_handlers(app):
    # Service-layer errors carry their own status and code
    @app.errorhandler(ServiceError)
    def handle_service_error(err: ServiceError):
        if err.status_code >= 500:
            logger.error("internal service error: %s", err.message, exc_info=err.__cause__ or err)
            return error_response(err.error_code, "An unexpected error occurred", err.status_code)
        return error_response(err.error_code, err.message, err.status_code, details=err.detail)

    # 404 Not Found
    @app.errorhandler(404)
    def not_found(e):
        return error_response("NOT_FOUND", "Resource not found", 404)

    # Marshmallow validation errors map to 400
    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        # err.messages contains field-level details
        return error_response("VALIDATION_ERROR", "Invalid input", 400, details=err.messages)

    @app.errorhandler(DuplicateKeyError)
    def handle_duplicate_key(err: DuplicateKeyError):
        logger.warning("unhandled duplicate key on %s", err.constraint)
        return error_response("CONFLICT", "Resource already exists.", 409)

    # Integrity errors that escaped the repositories (FK violations, other uniques)
    @app.errorhandler(IntegrityError)
    def handle_integrity_error(err: IntegrityError):
        lower_msg = str(getattr(err, "orig", err)).lower()
        logger.warning("integrity error: %s", lower_msg)
        # Heuristics: tailor the status; never echo the driver message
        if "unique constraint" in lower_msg or "unique violation" in lower_msg or "duplicate key" in lower_msg:
            return error_response("CONFLICT", "Unique constraint violated.", 409)
        if "foreign key" in lower_msg:
            return error_response("BAD_REQUEST", "Foreign key constraint failed.", 400)
        return error_response("BAD_REQUEST", "Integrity error.", 400)

    # Werkzeug HTTPExceptions map to their status codes
    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        code = err.code or 400
        return error_response(_HTTP_ERROR_CODES.get(code, "BAD_REQUEST"), err.description, code)

    # 500 Internal Error (catch-all)
    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        logger.exception("Unhandled exception", exc_info=err)
        # In dev, include exception details to speed up debugging
        details = None
        if current_app and current_app.debug:
            details = {"type": err.__class__.__name__}
        return error_response("INTERNAL_ERROR", "An unexpected error occurred", 500, details=details)
