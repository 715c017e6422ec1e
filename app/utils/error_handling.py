"""Centralized error handling utilities."""

import functools
import logging
from collections.abc import Callable
from typing import Any

from flask import current_app, jsonify
from flask.wrappers import Response
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import BadRequest

from app.exceptions import (
    ApprovalConflictException,
    BusinessLogicException,
    InsufficientStockException,
    InvalidOperationException,
    InvalidTransitionException,
    LimitExceededException,
    RecordNotFoundException,
    ReservationExpiredException,
    ReservationNotActiveException,
    ReservationRequiredException,
    ResourceConflictException,
    UnauthorizedApproverException,
    ValidationException,
)
from app.utils import get_current_correlation_id

logger = logging.getLogger(__name__)

# Most specific first; the first matching class decides the status.
_STATUS_BY_EXCEPTION: list[tuple[type[BusinessLogicException], int, str]] = [
    (RecordNotFoundException, 404, "The requested resource could not be found"),
    (ValidationException, 400, "The request contains invalid values"),
    (UnauthorizedApproverException, 403, "The approver may not decide this level"),
    (ApprovalConflictException, 409, "The approval changed concurrently; refresh and retry"),
    (ResourceConflictException, 409, "A resource with those details already exists"),
    (ReservationNotActiveException, 409, "The reservation changed concurrently; refresh and retry"),
    (InsufficientStockException, 409, "The requested quantity is not available"),
    (ReservationExpiredException, 409, "The reservation expired and must be placed again"),
    (ReservationRequiredException, 409, "An active reservation is required"),
    (LimitExceededException, 409, "The request exceeds the technician's limits"),
    (InvalidTransitionException, 409, "The request's status does not allow this operation"),
    (InvalidOperationException, 409, "The requested operation cannot be performed"),
]


def _mark_session_for_rollback() -> None:
    """Flag the request session so teardown rolls back partial work."""
    container = getattr(current_app, "container", None)
    if container is None:
        return
    container.db_session().info["needs_rollback"] = True


def _business_error_response(e: BusinessLogicException) -> tuple[Response, int]:
    for exception_type, status, detail in _STATUS_BY_EXCEPTION:
        if isinstance(e, exception_type):
            break
    else:
        status, detail = 400, "A business rule prevented the operation"

    return jsonify({
        "error": e.message,
        "code": e.error_code,
        "retryable": e.retryable,
        "details": {"message": detail},
    }), status


def handle_api_errors(func: Callable[..., Any]) -> Callable[..., Response | tuple[Response | str, int]]:
    """Decorator to handle common API errors consistently.

    Handles ValidationError, IntegrityError, business exceptions and generic
    exceptions with appropriate HTTP status codes and error messages. Any
    error flags the request session for rollback.
    """
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except BadRequest:
            # JSON parsing errors from request.get_json()
            _mark_session_for_rollback()
            return jsonify({
                "error": "Invalid JSON",
                "code": "VALIDATION_FAILED",
                "retryable": False,
                "details": {"message": "Request body must be valid JSON"}
            }), 400
        except ValidationError as e:
            # Pydantic validation errors
            _mark_session_for_rollback()
            error_details = []
            for error in e.errors():
                field = ".".join(str(x) for x in error["loc"])
                message = error["msg"]
                error_details.append({
                    "message": message,
                    "field": field
                })

            return jsonify({
                "error": "Validation failed",
                "code": "VALIDATION_FAILED",
                "retryable": False,
                "details": error_details
            }), 400

        except BusinessLogicException as e:
            _mark_session_for_rollback()
            return _business_error_response(e)

        except IntegrityError as e:
            # Database constraint violations
            _mark_session_for_rollback()
            error_msg = str(e.orig) if hasattr(e, 'orig') else str(e)

            # Map common constraint violations to user-friendly messages
            if "UNIQUE constraint failed" in error_msg or "duplicate key" in error_msg.lower():
                return jsonify({
                    "error": "Resource already exists",
                    "code": "RESOURCE_CONFLICT",
                    "retryable": True,
                    "details": {"message": "A record with these values already exists"}
                }), 409
            elif "FOREIGN KEY constraint failed" in error_msg or "foreign key" in error_msg.lower():
                return jsonify({
                    "error": "Invalid reference",
                    "code": "VALIDATION_FAILED",
                    "retryable": False,
                    "details": {"message": "Referenced resource does not exist"}
                }), 400
            else:
                return jsonify({
                    "error": "Database constraint violation",
                    "code": "VALIDATION_FAILED",
                    "retryable": False,
                    "details": {"message": "The operation violates a database constraint"}
                }), 400

        except Exception as e:
            # Generic error handler
            _mark_session_for_rollback()
            correlation_id = get_current_correlation_id()
            logger.exception("Unhandled error in %s (request %s)", func.__name__, correlation_id)
            return jsonify({
                "error": "Internal server error",
                "code": "INTERNAL_ERROR",
                "retryable": False,
                "details": {"message": str(e), "correlation_id": correlation_id}
            }), 500

    return wrapper
