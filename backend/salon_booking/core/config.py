"""
Centralized configuration module for application-wide settings.

This module provides centralized configuration for timezone handling and
the booking grid, ensuring consistency across all datetime operations in the
application.
"""

import logging
import os
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

# ===========================
# Timezone Configuration
# ===========================


def get_app_timezone() -> ZoneInfo:
    """
    Get the application timezone from environment variable.

    Working hours are stored as local wall-clock times; this timezone turns
    them into absolute instants for a given date.

    Returns:
        ZoneInfo: Application timezone (defaults to UTC if not configured)

    Environment Variables:
        TZ: Timezone identifier (e.g., 'America/Sao_Paulo', 'UTC')
            Default: 'UTC' (safe fallback)

    Examples:
        >>> # In .env file:
        >>> # TZ=America/Sao_Paulo
        >>> tz = get_app_timezone()
        >>> print(tz)  # America/Sao_Paulo
    """
    tz_name = os.getenv("TZ", "UTC")

    try:
        return ZoneInfo(tz_name)
    except Exception as e:
        logger.warning(
            f"Invalid timezone '{tz_name}' specified in TZ environment variable. "
            f"Falling back to UTC. Error: {e}"
        )
        return ZoneInfo("UTC")


# Global timezone instance - initialized once at import time
APP_TZ = get_app_timezone()


def utc_now() -> datetime:
    """Default clock for the booking services."""
    return datetime.now(timezone.utc)


def log_timezone_config():
    """Log the active timezone configuration at startup."""
    logger.info(
        "Timezone configuration initialized",
        extra={
            "context": {
                "timezone": str(APP_TZ),
                "tz_env_var": os.getenv("TZ", "UTC"),
            }
        },
    )


# ===========================
# Booking Grid Configuration
# ===========================

DEFAULT_SLOT_GRANULARITY_MINUTES = 30


def get_slot_granularity_minutes() -> int:
    """
    Get the step between candidate slot start times.

    Environment Variables:
        SLOT_GRANULARITY_MINUTES: Minutes between candidate starts
            Default: 30
            Must be between 5 and 120 and divide a day evenly.

    Returns:
        int: Granularity in minutes (falls back to 30 on invalid input)
    """
    raw = os.getenv("SLOT_GRANULARITY_MINUTES", str(DEFAULT_SLOT_GRANULARITY_MINUTES))
    try:
        value = int(raw)
    except (TypeError, ValueError):
        value = -1

    if not 5 <= value <= 120 or (24 * 60) % value != 0:
        logger.warning(
            "Invalid SLOT_GRANULARITY_MINUTES, using default",
            extra={
                "context": {
                    "value": raw,
                    "default": DEFAULT_SLOT_GRANULARITY_MINUTES,
                }
            },
        )
        return DEFAULT_SLOT_GRANULARITY_MINUTES

    return value


SLOT_GRANULARITY_MINUTES = get_slot_granularity_minutes()


def log_booking_config():
    """Log the active booking grid configuration at startup."""
    logger.info(
        "Booking configuration initialized",
        extra={
            "context": {
                "slot_granularity_minutes": SLOT_GRANULARITY_MINUTES,
                "env_var": os.getenv("SLOT_GRANULARITY_MINUTES", "30 (default)"),
            }
        },
    )


# ===========================
# Health Check Configuration
# ===========================


def get_health_check_token() -> str | None:
    """
    Get the health check token from environment variable.

    Returns:
        str | None: Health check token if configured, None otherwise

    Environment Variables:
        HEALTH_CHECK_TOKEN: Token required for detailed health checks
            Default: None (detailed health output disabled if not set)
    """
    return os.getenv("HEALTH_CHECK_TOKEN", None)


HEALTH_CHECK_TOKEN = get_health_check_token()
