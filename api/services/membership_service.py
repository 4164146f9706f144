"""Service for workspace membership and role assignment.

Rules enforced here, on top of the database policies:
- only Owner/Admin members manage memberships
- a user holds at most one membership per workspace
- the Owner role only moves through ownership transfer
- nobody changes their own role
- the workspace owner's membership can be neither demoted nor removed
"""

from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from api.exceptions import (
    ConflictError,
    NotFoundError,
    ValidationError,
    translate_db_error,
)
from api.services.access import deny, get_workspace_or_404, require_member, require_privileged
from api.validation import validate_payload
from tenancy.db.isolation import tenant_session
from tenancy.db.models import (
    Role,
    SystemRole,
    WorkspaceMembership,
    WorkspaceMembershipCreate,
    WorkspaceMembershipUpdate,
)
from tenancy.logging import get_logger
from tenancy.repositories import (
    RoleRepository,
    UserRepository,
    WorkspaceMembershipRepository,
)

logger = get_logger(__name__)


def _assignable_role(session, role_id: UUID, workspace_id: UUID, acting_user_id: UUID) -> Role:
    """Load a role that may be given to a member of workspace_id."""
    role = RoleRepository(session).get(role_id)
    if role is None:
        raise NotFoundError("Role not found", details={"role_id": str(role_id)})
    if not role.is_system and role.workspace_id != workspace_id:
        raise ValidationError(
            "Role belongs to a different workspace",
            details={
                "errors": [
                    {
                        "field": "role_id",
                        "message": "Role is not available in this workspace",
                        "type": "cross_workspace_role",
                    }
                ]
            },
        )
    if role.id == SystemRole.OWNER.id:
        raise deny(
            "The Owner role can only be granted by transferring ownership",
            workspace_id=workspace_id,
            user_id=acting_user_id,
        )
    return role


class MembershipService:
    """Service for membership management within a workspace."""

    def assign_role(
        self,
        workspace_id: UUID,
        user_id: UUID,
        role_id: UUID,
        invited_by: UUID,
    ) -> WorkspaceMembership:
        """Add a user to a workspace with a role.

        Args:
            workspace_id: Target workspace
            user_id: User being added
            role_id: System role or a custom role of this workspace
            invited_by: Acting user; must be Owner or Admin

        Returns:
            The new membership

        Raises:
            AuthorizationError: Caller is not Owner/Admin, or role is Owner
            NotFoundError: Workspace, role or user does not exist
            ValidationError: Role belongs to another workspace
            ConflictError: The user is already a member (use update_role)
        """
        data = validate_payload(
            WorkspaceMembershipCreate,
            {
                "workspace_id": workspace_id,
                "user_id": user_id,
                "role_id": role_id,
                "invited_by": invited_by,
            },
        )

        with tenant_session(invited_by) as session:
            require_privileged(session, invited_by, workspace_id, "assign roles")
            _assignable_role(session, role_id, workspace_id, invited_by)
            if UserRepository(session).get(user_id) is None:
                raise NotFoundError("User not found", details={"user_id": str(user_id)})

            membership_repo = WorkspaceMembershipRepository(session)
            if membership_repo.get(workspace_id, user_id) is not None:
                raise ConflictError(
                    "User is already a member of this workspace; use update_role",
                    details={"workspace_id": str(workspace_id), "user_id": str(user_id)},
                )

            try:
                membership = membership_repo.create(data)
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise translate_db_error(
                    e,
                    details={"workspace_id": str(workspace_id), "user_id": str(user_id)},
                ) from e

            logger.info(
                "member_added",
                workspace_id=str(workspace_id),
                member_id=str(user_id),
                role_id=str(role_id),
                invited_by=str(invited_by),
            )
            return membership

    def update_role(
        self,
        workspace_id: UUID,
        user_id: UUID,
        new_role_id: UUID,
        acting_user_id: UUID,
    ) -> WorkspaceMembership:
        """Change a member's role.

        Raises:
            AuthorizationError: Caller is not Owner/Admin, targets themselves,
                targets the workspace owner, or asks for the Owner role
            NotFoundError: Workspace, role or membership does not exist
            ValidationError: Role belongs to another workspace
        """
        data = validate_payload(WorkspaceMembershipUpdate, {"role_id": new_role_id})

        with tenant_session(acting_user_id) as session:
            require_privileged(session, acting_user_id, workspace_id, "change member roles")
            if user_id == acting_user_id:
                raise deny(
                    "You cannot change your own role",
                    workspace_id=workspace_id,
                    user_id=acting_user_id,
                )

            workspace = get_workspace_or_404(session, workspace_id)
            if user_id == workspace.owner_id:
                raise deny(
                    "The workspace owner's role cannot be changed; transfer ownership first",
                    workspace_id=workspace_id,
                    user_id=acting_user_id,
                )

            _assignable_role(session, data.role_id, workspace_id, acting_user_id)

            membership_repo = WorkspaceMembershipRepository(session)
            membership = membership_repo.get(workspace_id, user_id)
            if membership is None:
                raise NotFoundError(
                    "Membership not found",
                    details={"workspace_id": str(workspace_id), "user_id": str(user_id)},
                )

            previous_role_id = membership.role_id
            try:
                membership_repo.update_role(membership, data.role_id)
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise translate_db_error(e) from e

            logger.info(
                "member_role_updated",
                workspace_id=str(workspace_id),
                member_id=str(user_id),
                previous_role_id=str(previous_role_id),
                role_id=str(data.role_id),
            )
            return membership

    def remove_member(
        self,
        workspace_id: UUID,
        user_id: UUID,
        acting_user_id: UUID,
    ) -> None:
        """Remove a member from a workspace.

        Raises:
            AuthorizationError: Caller is not Owner/Admin, or user is the owner
            NotFoundError: Workspace or membership does not exist
        """
        with tenant_session(acting_user_id) as session:
            require_privileged(session, acting_user_id, workspace_id, "remove members")
            workspace = get_workspace_or_404(session, workspace_id)
            if user_id == workspace.owner_id:
                raise deny(
                    "The workspace owner cannot be removed",
                    workspace_id=workspace_id,
                    user_id=acting_user_id,
                )

            membership_repo = WorkspaceMembershipRepository(session)
            if membership_repo.get(workspace_id, user_id) is None:
                raise NotFoundError(
                    "Membership not found",
                    details={"workspace_id": str(workspace_id), "user_id": str(user_id)},
                )

            self._delete(session, membership_repo, workspace_id, user_id, acting_user_id)

            logger.info(
                "member_removed",
                workspace_id=str(workspace_id),
                member_id=str(user_id),
                removed_by=str(acting_user_id),
            )

    def leave_workspace(self, workspace_id: UUID, user_id: UUID) -> None:
        """Remove the caller's own membership. The owner cannot leave."""
        with tenant_session(user_id) as session:
            require_member(session, user_id, workspace_id)
            workspace = get_workspace_or_404(session, workspace_id)
            if user_id == workspace.owner_id:
                raise deny(
                    "The workspace owner cannot leave; transfer ownership first",
                    workspace_id=workspace_id,
                    user_id=user_id,
                )

            membership_repo = WorkspaceMembershipRepository(session)
            self._delete(session, membership_repo, workspace_id, user_id, user_id)

            logger.info(
                "member_left",
                workspace_id=str(workspace_id),
                member_id=str(user_id),
            )

    def list_members(
        self, workspace_id: UUID, acting_user_id: UUID
    ) -> list[WorkspaceMembership]:
        """List the memberships of a workspace. Any member may call this."""
        with tenant_session(acting_user_id) as session:
            require_member(session, acting_user_id, workspace_id)
            return WorkspaceMembershipRepository(session).list_by_workspace(workspace_id)

    def _delete(self, session, membership_repo, workspace_id, user_id, acting_user_id):
        try:
            deleted = membership_repo.delete(workspace_id, user_id)
            if not deleted:
                # Row exists but the database policies refused the delete
                raise deny(
                    "Membership could not be removed",
                    workspace_id=workspace_id,
                    user_id=acting_user_id,
                )
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise translate_db_error(e) from e
