"""
Standardized response utilities for the portal API.

Every portal response carries the caller's pending toasts. Errors use one
envelope:
{
    "error": {
        "message": "User-friendly error message",
        "code": "ERROR_CODE"
    },
    "toasts": [...]
}

Usage:
    from loyalty_portal.utils.errors import error_response, ErrorCode

    return error_response("Código inválido", ErrorCode.CODE_INVALID, 400)
"""
import logging
from enum import Enum
from flask import jsonify
from typing import Optional

from ..models import ToastType
from ..services.toast_service import notify, pending_toasts

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # Authentication (401)
    AUTH_REQUIRED = "AUTH_REQUIRED"
    SESSION_EXPIRED = "SESSION_EXPIRED"

    # Sign-in (400, 404)
    NO_ACCOUNT = "NO_ACCOUNT"
    CODE_EXPIRED = "CODE_EXPIRED"
    CODE_INVALID = "CODE_INVALID"
    AUTH_PROVIDER_ERROR = "AUTH_PROVIDER_ERROR"

    # Validation (400)
    INVALID_REQUEST = "INVALID_REQUEST"
    MISSING_FIELD = "MISSING_FIELD"

    # Not Found (404)
    NOT_FOUND = "NOT_FOUND"
    MEMBER_NOT_FOUND = "MEMBER_NOT_FOUND"

    # Conflict (409)
    STATE_CONFLICT = "STATE_CONFLICT"
    REDEMPTION_IN_PROGRESS = "REDEMPTION_IN_PROGRESS"

    # Redemption (400)
    INSUFFICIENT_POINTS = "INSUFFICIENT_POINTS"
    INVALID_REWARD = "INVALID_REWARD"
    REDEMPTION_REJECTED = "REDEMPTION_REJECTED"

    # External Service Errors (502, 503)
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"

    # Server Errors (500)
    INTERNAL_ERROR = "INTERNAL_ERROR"


def json_response(payload: dict = None, status_code: int = 200) -> tuple:
    """Successful portal response with pending toasts attached."""
    body = dict(payload or {})
    body['toasts'] = pending_toasts()
    return jsonify(body), status_code


def error_response(
    message: str,
    code: ErrorCode = ErrorCode.INTERNAL_ERROR,
    status_code: int = 500,
    log_error: bool = True,
    details: Optional[dict] = None,
    toast: bool = True,
) -> tuple:
    """
    Create a standardized error response.

    Args:
        message: User-friendly error message
        code: Error code from ErrorCode enum
        status_code: HTTP status code
        log_error: Whether to log the error (default True for 500s)
        details: Optional additional details (only logged, not returned to user)
        toast: Also surface the message as an error toast

    Returns:
        Tuple of (response, status_code) for Flask
    """
    if log_error and status_code >= 500:
        logger.error(f"API Error [{code}]: {message}", extra={"details": details})
    elif log_error and status_code >= 400:
        logger.warning(f"API Error [{code}]: {message}", extra={"details": details})

    if toast:
        notify(message, ToastType.ERROR)

    response = {
        "error": {
            "message": message,
            "code": code.value if isinstance(code, ErrorCode) else code
        },
        "toasts": pending_toasts(),
    }

    return jsonify(response), status_code


# Convenience functions for common error types
def bad_request(message: str, code: ErrorCode = ErrorCode.INVALID_REQUEST) -> tuple:
    """400 Bad Request error."""
    return error_response(message, code, 400, log_error=False)


def unauthorized(message: str, code: ErrorCode = ErrorCode.AUTH_REQUIRED) -> tuple:
    """401 Unauthorized error."""
    return error_response(message, code, 401, log_error=False)


def not_found(message: str, code: ErrorCode = ErrorCode.NOT_FOUND) -> tuple:
    """404 Not Found error."""
    return error_response(message, code, 404, log_error=False)


def conflict(message: str, code: ErrorCode = ErrorCode.STATE_CONFLICT) -> tuple:
    """409 Conflict error."""
    return error_response(message, code, 409, log_error=False)


def internal_error(message: str, details: Optional[dict] = None) -> tuple:
    """500 Internal Server Error."""
    return error_response(message, ErrorCode.INTERNAL_ERROR, 500, log_error=True, details=details)
