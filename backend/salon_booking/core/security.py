import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from salon_booking.domain.entities import AuthUser
from salon_booking.domain.interfaces import IAuthAdapter


# JWT configuration
def get_jwt_secret_key():
    """Get JWT secret key with production validation.

    In production (FLASK_ENV=production), this function validates that:
    - JWT_SECRET_KEY is set and not using weak defaults
    - Secret is at least 32 characters long

    Raises:
        ValueError: If production deployment uses weak or missing JWT secret

    Returns:
        JWT secret key from environment or development default
    """
    secret = os.getenv("JWT_SECRET_KEY", "dev-jwt-secret-change-me")
    is_production = os.getenv("FLASK_ENV") == "production"

    if is_production:
        weak_secrets = ["dev-jwt-secret-change-me", "dev-secret-change-me", "secret123"]
        if secret in weak_secrets or len(secret) < 32:
            raise ValueError(
                "Production deployment requires strong JWT_SECRET_KEY (min 32 chars). "
                "Set JWT_SECRET_KEY environment variable."
            )

    return secret


def get_jwt_algorithm() -> str:
    return os.getenv("JWT_ALGORITHM", "HS256")


def get_jwt_audience() -> Optional[str]:
    return os.getenv("JWT_AUDIENCE") or None


JWT_EXPIRATION_HOURS = 24


def create_access_token(
    data: Dict[str, Any], expires_delta: Optional[timedelta] = None
) -> str:
    """Create a JWT access token.

    Args:
        data: Payload data to encode in the token
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(hours=JWT_EXPIRATION_HOURS)

    to_encode.update({"exp": expire})
    audience = get_jwt_audience()
    if audience and "aud" not in to_encode:
        to_encode["aud"] = audience

    return jwt.encode(to_encode, get_jwt_secret_key(), algorithm=get_jwt_algorithm())


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Decode and validate a JWT access token.

    Args:
        token: JWT token string to decode

    Returns:
        Decoded payload if valid, None if invalid or expired
    """
    audience = get_jwt_audience()
    try:
        return jwt.decode(
            token,
            get_jwt_secret_key(),
            algorithms=[get_jwt_algorithm()],
            audience=audience,
            options={"verify_aud": audience is not None},
        )
    except jwt.PyJWTError:
        return None


def create_owner_token(
    owner_id: int, email: Optional[str] = None, expires_delta: Optional[timedelta] = None
) -> str:
    """Create a JWT token identifying a salon owner account.

    Args:
        owner_id: Account ID that owns professionals, services and appointments
        email: Optional email claim
        expires_delta: Optional custom expiration time

    Returns:
        JWT token string
    """
    token_data: Dict[str, Any] = {"sub": str(owner_id), "type": "access"}
    if email:
        token_data["email"] = email
    return create_access_token(token_data, expires_delta)


class JWTAuthAdapter(IAuthAdapter):
    """Identity provider backed by HS256 bearer tokens."""

    def validate_token(self, token: str) -> Optional[AuthUser]:
        payload = decode_access_token(token)
        if payload is None:
            return None

        subject = payload.get("sub")
        if subject is None:
            return None
        try:
            owner_id = int(subject)
        except (TypeError, ValueError):
            return None
        if owner_id <= 0:
            return None

        return AuthUser(id=owner_id, email=payload.get("email"))
