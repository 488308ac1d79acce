"""
Error envelope middleware - Standardize all router error responses.

Provides consistent error response format:
{
    "error": {
        "code": "CONTROLLER_NOT_FOUND",
        "message": "Controller not found: WidgetsController",
        "requestId": "uuid"
    }
}

Contract violations caught by the response checker are not errors here: they
keep the {message, content} body the checker builds.
"""

import logging
from typing import Optional, Tuple

from flask import Flask, Response, g, has_app_context, jsonify
from werkzeug.exceptions import HTTPException


logger = logging.getLogger('oas_router.middleware.error')


# Error codes reference
ERROR_CODES = {
    # Client errors (4xx)
    "BAD_REQUEST": 400,
    "NOT_FOUND": 404,
    "METHOD_NOT_ALLOWED": 405,

    # Dispatch errors
    "CONTROLLER_NOT_FOUND": 500,
    "HANDLER_NOT_FOUND": 500,
    "NO_RESPONSE": 500,

    # Server errors (5xx)
    "INTERNAL_ERROR": 500,
}


def setup_error_handlers(app: Flask) -> None:
    """
    Set up standardized error handlers on Flask app.

    Handles:
    - HTTP exceptions (404, 405, ...), status preserved
    - Unhandled exceptions from controllers, including next(error)

    Args:
        app: Flask application instance
    """

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        # "Not Found" -> "NOT_FOUND"
        code = error.name.upper().replace(' ', '_')
        return make_error_response(code, error.description, status_code=error.code)

    @app.errorhandler(Exception)
    def handle_generic_error(error):
        logger.exception(
            f"Unhandled error: {error}",
            extra={
                "event": "unhandled_error",
                "request_id": _request_id(),
                "error_type": type(error).__name__,
            }
        )
        return make_error_response("INTERNAL_ERROR", "An unexpected error occurred", status_code=500)


def make_error_response(
    code: str,
    message: str,
    status_code: Optional[int] = None,
    details: Optional[dict] = None,
) -> Tuple[Response, int]:
    """
    Create a standardized error response.

    Args:
        code: Error code (e.g., "CONTROLLER_NOT_FOUND")
        message: Human-readable error message
        status_code: HTTP status code (defaults based on error code)
        details: Optional additional details dict

    Returns:
        Tuple of (response, status_code)
    """
    request_id = _request_id()

    if status_code is None:
        status_code = ERROR_CODES.get(code, 500)

    error = {
        "error": {
            "code": code,
            "message": message,
            "requestId": request_id,
        }
    }
    if details:
        error["error"]["details"] = details

    response = jsonify(error)
    if request_id:
        response.headers['X-Request-ID'] = request_id

    return response, status_code


def _request_id() -> Optional[str]:
    return getattr(g, 'request_id', None) if has_app_context() else None
