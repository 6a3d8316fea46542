"""
Central pytest configuration for the salon booking tests.

This file provides common fixtures, test markers, and setup
for both unit and integration tests.
"""

import os
from datetime import timezone

import pytest

# Test environment (set early so import-time configuration uses it)
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["TESTING"] = "true"
os.environ["RATE_LIMIT_ENABLED"] = "0"  # Disable rate limiting in tests
os.environ["LOG_TO_FILE"] = "0"  # Console logging only
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret-key-with-enough-length"
os.environ.setdefault("FLASK_ENV", "testing")

from sqlalchemy.orm import sessionmaker  # noqa: E402

from salon_booking.db.session import build_engine, create_tables  # noqa: E402
from tests.config.markers import *  # noqa: E402,F401,F403
from tests.fixtures.salon_fixtures import (  # noqa: E402
    NOW,
    OTHER_OWNER_ID,
    OWNER_ID,
    SalonSeeder,
)

# =====================================================
# DATABASE FIXTURES
# =====================================================


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database per test."""
    eng = build_engine("sqlite:///:memory:")
    create_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(
        bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
    )


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seed(session_factory):
    """Helper that inserts professionals, services, clients and hours."""
    return SalonSeeder(session_factory)


@pytest.fixture
def clock():
    return lambda: NOW


# =====================================================
# APPLICATION FIXTURES
# =====================================================


@pytest.fixture
def app(session_factory, clock):
    """Flask app wired to the per-test database and a fixed clock."""
    from salon_booking.main import create_app

    flask_app = create_app(
        config={
            "TESTING": True,
            "APP_TZ": timezone.utc,
            "SLOT_GRANULARITY_MINUTES": 30,
            "HEALTH_CHECK_TOKEN": "health-token",
        },
        session_factory=session_factory,
        clock=clock,
    )
    yield flask_app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers():
    from salon_booking.core.security import create_owner_token

    token = create_owner_token(OWNER_ID, "owner@salon.test")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_owner_headers():
    from salon_booking.core.security import create_owner_token

    token = create_owner_token(OTHER_OWNER_ID, "other@salon.test")
    return {"Authorization": f"Bearer {token}"}
