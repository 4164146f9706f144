"""Authorization guards shared by the tenancy services.

Every guard resolves the caller's abilities live, inside the service's own
transaction; nothing here trusts a role claim supplied by the caller.
Denials are logged as authorization_denied events before raising.
"""

from uuid import UUID

from sqlmodel import Session

from api.exceptions import AuthorizationError, NotFoundError
from tenancy.authz import AbilityResolver, PermissionSet
from tenancy.db.models import SystemRole, User, Workspace
from tenancy.logging import get_logger

logger = get_logger(__name__)


def deny(message: str, **context) -> AuthorizationError:
    """Log a denial and build the error to raise."""
    details = {key: str(value) for key, value in context.items()}
    logger.warning("authorization_denied", reason=message, **details)
    return AuthorizationError(message, details=details)


def get_workspace_or_404(session: Session, workspace_id: UUID) -> Workspace:
    workspace = session.get(Workspace, workspace_id)
    if workspace is None:
        raise NotFoundError("Workspace not found", details={"workspace_id": str(workspace_id)})
    return workspace


def require_member(session: Session, user_id: UUID, workspace_id: UUID) -> PermissionSet:
    """Resolve abilities, refusing callers without a membership.

    A workspace the caller cannot see at all is reported as not found.
    """
    abilities = AbilityResolver(session).resolve(user_id, workspace_id)
    if not abilities.is_member:
        get_workspace_or_404(session, workspace_id)
        raise deny(
            "You are not a member of this workspace",
            workspace_id=workspace_id,
            user_id=user_id,
        )
    return abilities


def require_privileged(
    session: Session, user_id: UUID, workspace_id: UUID, action: str
) -> PermissionSet:
    """Owner or Admin in the workspace."""
    abilities = require_member(session, user_id, workspace_id)
    if not abilities.is_privileged:
        raise deny(
            f"Only workspace owners and admins can {action}",
            workspace_id=workspace_id,
            user_id=user_id,
        )
    return abilities


def require_owner(
    session: Session, user_id: UUID, workspace_id: UUID, action: str
) -> PermissionSet:
    """Owner membership in the workspace (owner_id alone is not enough)."""
    abilities = require_member(session, user_id, workspace_id)
    if not abilities.has_role(SystemRole.OWNER):
        raise deny(
            f"Only the workspace owner can {action}",
            workspace_id=workspace_id,
            user_id=user_id,
        )
    return abilities


def require_super_admin(session: Session, user_id: UUID, action: str) -> User:
    user = session.get(User, user_id)
    if user is None or not user.is_super_admin:
        raise deny(f"Only super-admins can {action}", user_id=user_id)
    return user
