"""FastAPI dependencies for authentication.

Provides:
- get_current_user: Extract and validate user from JWT token

Authorization is not decided here; services resolve the caller's
abilities on every call.
"""

from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from api.auth.jwt import verify_token, VALID_ACCESS_TOKEN_TYPES
from tenancy.db.engine import get_session
from tenancy.db.models import User
from tenancy.logging import bind_context


# Security scheme for JWT Bearer tokens
security = HTTPBearer(auto_error=False)


class CurrentUser:
    """Container for authenticated user context."""

    def __init__(self, user: User):
        self.user = user

    @property
    def user_id(self) -> UUID:
        return self.user.id

    @property
    def is_super_admin(self) -> bool:
        return bool(self.user.is_super_admin)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CurrentUser:
    """Extract and validate current user from JWT token.

    This dependency:
    1. Extracts JWT from Authorization header
    2. Verifies token validity and type
    3. Loads user from database
    4. Binds user_id to the logging context

    Raises:
        HTTPException 401: Missing or invalid token
        HTTPException 401: User not found

    Returns:
        CurrentUser: Authenticated user context
    """
    if not credentials:
        raise _unauthorized("Missing authentication credentials")

    payload = verify_token(credentials.credentials)
    if not payload:
        raise _unauthorized("Invalid or expired token")

    # Validate token type - only access tokens allowed for API routes
    token_type = payload.get("type", "access")
    if token_type not in VALID_ACCESS_TOKEN_TYPES:
        raise _unauthorized("Invalid token type for this endpoint")

    user_id_str = payload.get("sub")
    if not user_id_str:
        raise _unauthorized("Invalid token payload")

    try:
        user_id = UUID(user_id_str)
    except ValueError:
        raise _unauthorized("Invalid user ID in token")

    with get_session() as session:
        user = session.get(User, user_id)
        if not user:
            raise _unauthorized("User not found")
        session.expunge(user)

    request.state.user = user
    bind_context(user_id=user.id)
    return CurrentUser(user=user)

