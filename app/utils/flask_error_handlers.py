"""Flask application error handlers.

These cover errors raised outside views wrapped by ``handle_api_errors``
(routing failures, SpecTree hooks, teardown) and produce the same body shape.
"""

from typing import Any

from flask import Flask, jsonify
from flask.wrappers import Response
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from app.exceptions import BusinessLogicException
from app.utils import get_current_correlation_id
from app.utils.error_handling import _business_error_response


def _error(status: int, error: str, code: str, details: Any, retryable: bool = False) -> tuple[Response, int]:
    return jsonify({
        "error": error,
        "code": code,
        "retryable": retryable,
        "details": details,
    }), status


def register_error_handlers(app: Flask) -> None:
    """Register Flask error handlers for errors raised outside handle_api_errors."""

    @app.errorhandler(BusinessLogicException)
    def handle_business_logic_error(error: BusinessLogicException):
        return _business_error_response(error)

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        details = [
            {"field": ".".join(str(x) for x in err["loc"]), "message": err["msg"]}
            for err in error.errors()
        ]
        return _error(400, "Validation failed", "VALIDATION_FAILED", details)

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(error: IntegrityError):
        error_msg = str(error.orig) if hasattr(error, "orig") else str(error)

        if "UNIQUE constraint failed" in error_msg or "duplicate key" in error_msg.lower():
            return _error(
                409,
                "Resource already exists",
                "RESOURCE_CONFLICT",
                {"message": "A record with these values already exists"},
                retryable=True,
            )
        return _error(
            400,
            "Database constraint violation",
            "VALIDATION_FAILED",
            {"message": "The operation violates a database constraint"},
        )

    @app.errorhandler(404)
    def handle_not_found(error):
        return _error(
            404,
            "Resource not found",
            "RECORD_NOT_FOUND",
            {"message": "The requested resource could not be found"},
        )

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        return _error(
            405,
            "Method not allowed",
            "METHOD_NOT_ALLOWED",
            {"message": "The HTTP method is not allowed for this endpoint"},
        )

    @app.errorhandler(500)
    def handle_internal_server_error(error):
        return _error(
            500,
            "Internal server error",
            "INTERNAL_ERROR",
            {
                "message": "An unexpected error occurred",
                "correlation_id": get_current_correlation_id(),
            },
        )
