"""
Health controller - health check endpoints for monitoring.
"""

import logging

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from salon_booking.core.api_utils import verify_health_token
from salon_booking.core.limiter_config import limiter

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/health")


@health_bp.route("", methods=["GET"])
@limiter.exempt
def health_check():
    """
    Check database connectivity.

    Returns:
        JSON response with:
        - status: "healthy" or "unhealthy"
        - database: "ok" or "unreachable"
        - details: dialect, timezone and slot granularity, only when the
          X-Health-Token header matches HEALTH_CHECK_TOKEN

    Status codes:
        200: database reachable
        503: database unreachable

    Note:
        - No authentication required (monitoring endpoint)
    """
    session_factory = current_app.extensions["session_factory"]
    dialect = "unknown"
    try:
        with session_factory() as db:
            db.execute(text("SELECT 1"))
            dialect = db.get_bind().dialect.name
        database_ok = True
    except SQLAlchemyError as e:
        logger.error(
            "Health check: database unreachable",
            extra={"context": {"endpoint": "/health", "error": str(e)}},
            exc_info=True,
        )
        database_ok = False

    body = {
        "status": "healthy" if database_ok else "unhealthy",
        "database": "ok" if database_ok else "unreachable",
    }
    if verify_health_token():
        body["details"] = {
            "dialect": dialect,
            "timezone": str(current_app.config["APP_TZ"]),
            "slot_granularity_minutes": current_app.config["SLOT_GRANULARITY_MINUTES"],
        }

    return jsonify(body), 200 if database_ok else 503
