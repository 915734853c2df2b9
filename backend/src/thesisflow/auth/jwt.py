"""JWT token generation and validation

Tokens carry the user id, email and global roles with a configurable TTL.

JWT Token Claims Structure:
===========================

Standard JWT Claims:
- sub (Subject): User ID as UUID string
- iat (Issued At): Unix timestamp when token was created
- exp (Expiration): Unix timestamp when token expires (iat + JWT_EXPIRY_MINUTES)

Custom Claims:
- email: User's email address (lower-cased)
- roles: Global roles, e.g. ["STUDENT"] or ["ADVISOR", "ADMIN"]

Security Properties:
- Algorithm: JWT_ALGORITHM (HS256 by default, symmetric signing)
- Secret: JWT_SECRET setting
- Stateless validation (the user row is still loaded per request)

Example Token Payload:
{
  "sub": "550e8400-e29b-41d4-a716-446655440000",
  "email": "ana@uni.example",
  "roles": ["STUDENT"],
  "iat": 1704368400,
  "exp": 1704372000
}
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable
from uuid import UUID

import jwt

from ..config import get_settings


def _get_jwt_secret() -> str:
    """Get JWT_SECRET from settings.

    Raises:
        ValueError: If JWT_SECRET is empty
    """
    secret = get_settings().JWT_SECRET
    if not secret:
        raise ValueError("JWT_SECRET is not set")
    return secret


def create_access_token(
    user_id: UUID,
    email: str,
    roles: Iterable[str],
) -> str:
    """Create a JWT access token for an authenticated user.

    Args:
        user_id: User's UUID
        email: User's email address
        roles: Global role names (STUDENT, ADVISOR, ADMIN)

    Returns:
        str: Signed JWT token

    Raises:
        ValueError: If JWT_SECRET is not set
    """
    settings = get_settings()
    secret = _get_jwt_secret()

    now = datetime.now(timezone.utc)
    expiration = now + timedelta(minutes=settings.JWT_EXPIRY_MINUTES)

    payload = {
        'sub': str(user_id),  # Subject: user ID
        'email': email,
        'roles': sorted(str(getattr(role, "value", role)) for role in roles),
        'iat': int(now.timestamp()),  # Issued at
        'exp': int(expiration.timestamp())  # Expiration
    }

    return jwt.encode(payload, secret, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and validate a JWT token.

    Args:
        token: JWT token string

    Returns:
        dict: Decoded token payload with claims

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid or tampered
        ValueError: If JWT_SECRET is not set
    """
    secret = _get_jwt_secret()

    try:
        return jwt.decode(token, secret, algorithms=[get_settings().JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise jwt.ExpiredSignatureError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise jwt.InvalidTokenError(f"Invalid token: {str(e)}")
