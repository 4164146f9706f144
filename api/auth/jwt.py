"""JWT token utilities for authentication.

Tokens are issued by the identity provider; this module verifies them
and, for development and tests, can mint access tokens with the same
secret. Only the 'sub' claim (the user id) is trusted downstream.
"""

import os
from datetime import datetime, timedelta, timezone
from uuid import uuid4

from jose import JWTError, jwt

# Configuration - JWT_SECRET is REQUIRED in all environments
JWT_SECRET = os.getenv("JWT_SECRET")
if not JWT_SECRET:
    raise RuntimeError(
        "JWT_SECRET environment variable is required. "
        "Set it to a secure random string (e.g., openssl rand -hex 32)"
    )
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 30

# Valid token types for API access
VALID_ACCESS_TOKEN_TYPES = ("access",)


def create_access_token(
    data: dict,
    token_type: str = "access",
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT access token.

    Args:
        data: Payload data (should include 'sub' for user_id)
        token_type: Token type (default "access")
        expires_delta: Lifetime override (default ACCESS_TOKEN_EXPIRE_MINUTES)

    Returns:
        Encoded JWT token string
    """
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update(
        {
            "exp": expire,
            "iat": now,
            "type": token_type,
            "jti": str(uuid4()),
        }
    )
    return jwt.encode(to_encode, JWT_SECRET, algorithm=JWT_ALGORITHM)


def verify_token(token: str) -> dict | None:
    """Verify and decode a JWT token.

    Args:
        token: JWT token string

    Returns:
        Decoded payload dict if valid, None if invalid/expired
    """
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
        return payload
    except JWTError:
        return None
