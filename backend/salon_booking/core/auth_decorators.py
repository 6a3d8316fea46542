"""
Authentication helpers for the booking API.

Requests authenticate with an ``Authorization: Bearer <token>`` header. The
Flask-Login ``request_loader`` registered in ``create_app()`` hands the token
to the configured ``IAuthAdapter``; controllers then protect routes with
``@login_required`` and read the tenant through ``current_owner_id()``.

Examples:
    @appointment_bp.route("", methods=["GET"])
    @login_required
    def list_appointments():
        owner_id = current_owner_id()
        ...
"""

from typing import Any, Optional

from flask import current_app, g
from flask_login import current_user


def extract_bearer_token(auth_header: Optional[str]) -> Optional[str]:
    """Return the token part of a ``Bearer`` Authorization header."""
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def load_user_from_header(auth_header: Optional[str]) -> Any:
    """Resolve an Authorization header into an authenticated user, or None."""
    token = extract_bearer_token(auth_header)
    if token is None:
        return None

    adapter = current_app.extensions.get("auth_adapter")
    if adapter is None:
        return None
    return adapter.validate_token(token)


def get_current_user() -> Any:
    """Return current authenticated user, preferring Flask `g.current_user` if set."""
    if hasattr(g, "current_user") and g.current_user:
        return g.current_user

    if current_user and getattr(current_user, "is_authenticated", False):
        return current_user

    return None


def current_owner_id() -> int:
    """Return the tenant id of the authenticated caller.

    Raises:
        RuntimeError: when called outside an authenticated request
    """
    user = get_current_user()
    if user is None:
        raise RuntimeError("No authenticated user in request context")
    return int(user.id)
