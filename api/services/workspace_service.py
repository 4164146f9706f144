"""Service for workspace lifecycle operations.

Provides high-level operations for workspace CRUD, wrapping
repository operations with authorization and session management.
Each public method runs in one tenant transaction.
"""

from typing import Any, Mapping
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from api.exceptions import (
    NotFoundError,
    TransactionError,
    ValidationError,
    translate_db_error,
)
from api.services.access import deny, get_workspace_or_404, require_member, require_owner
from api.validation import validate_payload
from tenancy.authz import AbilityResolver, PermissionSet
from tenancy.db.isolation import tenant_session
from tenancy.db.models import (
    SystemRole,
    Workspace,
    WorkspaceCreate,
    WorkspaceMembershipCreate,
    WorkspaceUpdate,
)
from tenancy.logging import get_logger
from tenancy.repositories import WorkspaceMembershipRepository, WorkspaceRepository

logger = get_logger(__name__)


def _trim_name(payload: Mapping[str, Any]) -> dict[str, Any]:
    values = dict(payload)
    if isinstance(values.get("name"), str):
        values["name"] = values["name"].strip()
    return values


class WorkspaceService:
    """Service for workspace management.

    Creating a workspace also creates the owner's membership; both rows
    commit together or not at all.
    """

    def create_workspace(self, name: str, owner_id: UUID) -> Workspace:
        """Create a new workspace with its owner membership.

        Args:
            name: Workspace display name (trimmed, 1-100 characters)
            owner_id: User ID of the workspace owner

        Returns:
            Created Workspace object

        Raises:
            ValidationError: Invalid name (nothing is written)
            IntegrityError: The workspace row was rejected by a constraint
            TransactionError: The owner membership could not be created;
                the workspace row is rolled back with it
        """
        data = validate_payload(
            WorkspaceCreate, _trim_name({"name": name, "owner_id": owner_id})
        )

        with tenant_session(owner_id) as session:
            workspace_repo = WorkspaceRepository(session)
            membership_repo = WorkspaceMembershipRepository(session)

            try:
                workspace = workspace_repo.create(data)
            except SQLAlchemyError as e:
                session.rollback()
                raise translate_db_error(
                    e,
                    "Workspace could not be created",
                    details={"owner_id": str(owner_id)},
                ) from e

            try:
                membership_repo.create(
                    WorkspaceMembershipCreate(
                        workspace_id=workspace.id,
                        user_id=owner_id,
                        role_id=SystemRole.OWNER.id,
                        invited_by=owner_id,
                    )
                )
                session.commit()
            except Exception as e:
                session.rollback()
                logger.error(
                    "workspace_creation_failed",
                    owner_id=str(owner_id),
                    error=str(e),
                )
                raise TransactionError(
                    "Workspace creation failed",
                    details={"owner_id": str(owner_id)},
                ) from e

            logger.info(
                "workspace_created",
                workspace_id=str(workspace.id),
                owner_id=str(owner_id),
            )
            return workspace

    def get_workspace(self, workspace_id: UUID, acting_user_id: UUID) -> Workspace:
        """Get a workspace the caller belongs to.

        Raises:
            NotFoundError: Workspace does not exist
            AuthorizationError: Caller is not a member
        """
        with tenant_session(acting_user_id) as session:
            require_member(session, acting_user_id, workspace_id)
            return get_workspace_or_404(session, workspace_id)

    def list_user_workspaces(self, user_id: UUID) -> list[Workspace]:
        """List all workspaces the user is a member of."""
        with tenant_session(user_id) as session:
            return WorkspaceRepository(session).list_by_user(user_id)

    def update_workspace(
        self,
        workspace_id: UUID,
        payload: Mapping[str, Any],
        acting_user_id: UUID,
    ) -> Workspace:
        """Rename a workspace. Owner only.

        WorkspaceUpdate accepts name only; owner_id changes through
        transfer_ownership.
        """
        if isinstance(payload, Mapping):
            payload = _trim_name(payload)
        data = validate_payload(WorkspaceUpdate, payload)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            raise ValidationError("No fields to update")

        with tenant_session(acting_user_id) as session:
            require_owner(session, acting_user_id, workspace_id, "update the workspace")
            workspace = get_workspace_or_404(session, workspace_id)
            try:
                WorkspaceRepository(session).update(workspace, **changes)
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise translate_db_error(e) from e

            logger.info(
                "workspace_updated",
                workspace_id=str(workspace_id),
                fields=sorted(changes),
            )
            return workspace

    def delete_workspace(self, workspace_id: UUID, acting_user_id: UUID) -> None:
        """Delete a workspace with its memberships and custom roles. Owner only."""
        with tenant_session(acting_user_id) as session:
            require_owner(session, acting_user_id, workspace_id, "delete the workspace")
            try:
                deleted = WorkspaceRepository(session).delete(workspace_id)
                if not deleted:
                    raise deny(
                        "Workspace could not be deleted",
                        workspace_id=workspace_id,
                        user_id=acting_user_id,
                    )
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise translate_db_error(e) from e

            logger.info(
                "workspace_deleted",
                workspace_id=str(workspace_id),
                user_id=str(acting_user_id),
            )

    def transfer_ownership(
        self,
        workspace_id: UUID,
        new_owner_id: UUID,
        acting_user_id: UUID,
    ) -> Workspace:
        """Hand the workspace to another member.

        The new owner's membership becomes Owner, owner_id moves to them and
        the previous owner is demoted to Admin, all in one transaction.

        Raises:
            AuthorizationError: Caller is not the current owner
            ValidationError: new_owner_id is already the owner
            NotFoundError: new_owner_id is not a member
        """
        with tenant_session(acting_user_id) as session:
            require_owner(session, acting_user_id, workspace_id, "transfer ownership")
            workspace = get_workspace_or_404(session, workspace_id)
            if workspace.owner_id != acting_user_id:
                raise deny(
                    "Only the workspace owner can transfer ownership",
                    workspace_id=workspace_id,
                    user_id=acting_user_id,
                )
            if new_owner_id == acting_user_id:
                raise ValidationError("You already own this workspace")

            membership_repo = WorkspaceMembershipRepository(session)
            new_membership = membership_repo.get(workspace_id, new_owner_id)
            if new_membership is None:
                raise NotFoundError(
                    "New owner must be an existing member of the workspace",
                    details={"user_id": str(new_owner_id)},
                )
            old_membership = membership_repo.get(workspace_id, acting_user_id)

            try:
                # Promote first: the policies still see the caller as owner
                membership_repo.update_role(new_membership, SystemRole.OWNER.id)
                WorkspaceRepository(session).update(workspace, owner_id=new_owner_id)
                membership_repo.update_role(old_membership, SystemRole.ADMIN.id)
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise translate_db_error(e) from e

            logger.info(
                "workspace_ownership_transferred",
                workspace_id=str(workspace_id),
                previous_owner_id=str(acting_user_id),
                new_owner_id=str(new_owner_id),
            )
            return workspace

    def resolve_abilities(self, user_id: UUID, workspace_id: UUID) -> PermissionSet:
        """Resolve a user's permissions in a workspace (empty for non-members)."""
        with tenant_session(user_id) as session:
            return AbilityResolver(session).resolve(user_id, workspace_id)
