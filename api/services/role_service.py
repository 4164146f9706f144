"""Service for workspace roles and their permission grants.

System roles are visible in every workspace but never modified here.
Custom roles belong to one workspace and are managed by its Owner and
Admin members.
"""

from typing import Any, Mapping
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from api.exceptions import (
    ConflictError,
    NotFoundError,
    ValidationError,
    translate_db_error,
)
from api.services.access import deny, require_member, require_privileged
from api.validation import scoped_payload, validate_payload
from tenancy.db.isolation import tenant_session
from tenancy.db.models import Permission, Role, RoleCreate, RolePermission, RoleUpdate
from tenancy.logging import get_logger
from tenancy.repositories import (
    PermissionRepository,
    RolePermissionRepository,
    RoleRepository,
    WorkspaceMembershipRepository,
)

logger = get_logger(__name__)


def _custom_role(session, role_id: UUID, workspace_id: UUID, acting_user_id: UUID) -> Role:
    """Load a custom role of workspace_id for modification."""
    role = RoleRepository(session).get(role_id)
    if role is None or (not role.is_system and role.workspace_id != workspace_id):
        raise NotFoundError("Role not found", details={"role_id": str(role_id)})
    if role.is_system:
        raise deny(
            "System roles cannot be modified",
            workspace_id=workspace_id,
            user_id=acting_user_id,
        )
    return role


class RoleService:
    """Service for custom role management."""

    def list_roles(self, workspace_id: UUID, acting_user_id: UUID) -> list[Role]:
        """System roles plus the workspace's custom roles. Any member."""
        with tenant_session(acting_user_id) as session:
            require_member(session, acting_user_id, workspace_id)
            return RoleRepository(session).list_for_workspace(workspace_id)

    def create_role(
        self,
        workspace_id: UUID,
        payload: Mapping[str, Any],
        acting_user_id: UUID,
    ) -> Role:
        """Create a custom role in a workspace. Owner/Admin only.

        Raises:
            ValidationError: Invalid payload (is_system is never accepted)
            ConflictError: A role with this name already exists here
        """
        data = validate_payload(RoleCreate, scoped_payload(payload, workspace_id=workspace_id))

        with tenant_session(acting_user_id) as session:
            require_privileged(session, acting_user_id, workspace_id, "manage roles")
            role_repo = RoleRepository(session)
            if role_repo.get_by_name(workspace_id, data.name) is not None:
                raise ConflictError(
                    "A role with this name already exists in the workspace",
                    details={"name": data.name},
                )
            try:
                role = role_repo.create(data)
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise translate_db_error(e, details={"name": data.name}) from e

            logger.info(
                "role_created",
                workspace_id=str(workspace_id),
                role_id=str(role.id),
                name=role.name,
            )
            return role

    def update_role(
        self,
        workspace_id: UUID,
        role_id: UUID,
        payload: Mapping[str, Any],
        acting_user_id: UUID,
    ) -> Role:
        """Rename or re-describe a custom role. Owner/Admin only."""
        data = validate_payload(RoleUpdate, payload)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("name", "") is None:
            raise ValidationError("Role name cannot be null")
        if not changes:
            raise ValidationError("No fields to update")

        with tenant_session(acting_user_id) as session:
            require_privileged(session, acting_user_id, workspace_id, "manage roles")
            role = _custom_role(session, role_id, workspace_id, acting_user_id)
            role_repo = RoleRepository(session)
            if "name" in changes and changes["name"] != role.name:
                if role_repo.get_by_name(workspace_id, changes["name"]) is not None:
                    raise ConflictError(
                        "A role with this name already exists in the workspace",
                        details={"name": changes["name"]},
                    )
            try:
                role_repo.update(role, **changes)
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise translate_db_error(e) from e

            logger.info(
                "role_updated",
                workspace_id=str(workspace_id),
                role_id=str(role_id),
                fields=sorted(changes),
            )
            return role

    def delete_role(self, workspace_id: UUID, role_id: UUID, acting_user_id: UUID) -> None:
        """Delete a custom role that no member holds. Owner/Admin only.

        Raises:
            ConflictError: The role is still assigned to members
        """
        with tenant_session(acting_user_id) as session:
            require_privileged(session, acting_user_id, workspace_id, "manage roles")
            _custom_role(session, role_id, workspace_id, acting_user_id)

            in_use = WorkspaceMembershipRepository(session).count_by_role(role_id)
            if in_use:
                raise ConflictError(
                    "Role is still assigned to members",
                    details={"role_id": str(role_id), "members": in_use},
                )
            try:
                if not RoleRepository(session).delete(role_id):
                    raise deny(
                        "Role could not be deleted",
                        workspace_id=workspace_id,
                        user_id=acting_user_id,
                    )
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise translate_db_error(e) from e

            logger.info(
                "role_deleted",
                workspace_id=str(workspace_id),
                role_id=str(role_id),
            )

    def list_role_permissions(
        self, workspace_id: UUID, role_id: UUID, acting_user_id: UUID
    ) -> list[Permission]:
        """Permissions granted to a system role or a custom role of this workspace."""
        with tenant_session(acting_user_id) as session:
            require_member(session, acting_user_id, workspace_id)
            role = RoleRepository(session).get(role_id)
            if role is None or (not role.is_system and role.workspace_id != workspace_id):
                raise NotFoundError("Role not found", details={"role_id": str(role_id)})
            return RolePermissionRepository(session).list_permissions(role_id)

    def grant_permission(
        self,
        workspace_id: UUID,
        role_id: UUID,
        permission_id: UUID,
        acting_user_id: UUID,
    ) -> RolePermission:
        """Grant a catalog permission to a custom role. Idempotent."""
        with tenant_session(acting_user_id) as session:
            require_privileged(session, acting_user_id, workspace_id, "manage roles")
            _custom_role(session, role_id, workspace_id, acting_user_id)
            if PermissionRepository(session).get(permission_id) is None:
                raise NotFoundError(
                    "Permission not found", details={"permission_id": str(permission_id)}
                )
            try:
                grant = RolePermissionRepository(session).grant(role_id, permission_id)
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise translate_db_error(e) from e

            logger.info(
                "role_permission_granted",
                workspace_id=str(workspace_id),
                role_id=str(role_id),
                permission_id=str(permission_id),
            )
            return grant

    def revoke_permission(
        self,
        workspace_id: UUID,
        role_id: UUID,
        permission_id: UUID,
        acting_user_id: UUID,
    ) -> None:
        """Revoke a permission from a custom role.

        Raises:
            NotFoundError: The role does not hold the permission
        """
        with tenant_session(acting_user_id) as session:
            require_privileged(session, acting_user_id, workspace_id, "manage roles")
            _custom_role(session, role_id, workspace_id, acting_user_id)
            try:
                revoked = RolePermissionRepository(session).revoke(role_id, permission_id)
                if not revoked:
                    raise NotFoundError(
                        "Role does not hold this permission",
                        details={"role_id": str(role_id), "permission_id": str(permission_id)},
                    )
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise translate_db_error(e) from e

            logger.info(
                "role_permission_revoked",
                workspace_id=str(workspace_id),
                role_id=str(role_id),
                permission_id=str(permission_id),
            )
