"""
Common API utilities for consistent response formatting across all controllers.
"""

from typing import Any, Optional

from flask import current_app, jsonify, request


def api_response(
    success: bool, message: str, data: Optional[Any] = None, status_code: int = 200
) -> tuple:
    """
    Standardized API response format for all endpoints.

    Args:
        success: Whether the operation was successful
        message: Human-readable message about the operation
        data: Optional data payload
        status_code: HTTP status code

    Returns:
        Tuple of (json_response, status_code)
    """
    response = {"success": success, "message": message}

    if data is not None:
        response["data"] = data

    return jsonify(response), status_code


def verify_health_token() -> bool:
    """
    Verify the health check token from request headers.

    Returns:
        bool: True if token is valid, False otherwise
    """
    token = request.headers.get("X-Health-Token")
    expected = current_app.config.get("HEALTH_CHECK_TOKEN")
    # If no token expected, deny access
    if not expected:
        return False
    return bool(token and token == expected)
