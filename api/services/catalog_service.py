"""Service for the global feature/permission catalog.

The catalog is readable by every authenticated user and writable by
super-admins only. Super-admins also manage which permissions the
system roles carry; they never gain access to workspace data this way.
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
from api.services.access import require_super_admin
from api.validation import scoped_payload, validate_payload
from tenancy.db.isolation import tenant_session
from tenancy.db.models import (
    Feature,
    FeatureCreate,
    FeatureUpdate,
    Permission,
    PermissionCreate,
    PermissionUpdate,
    RolePermission,
    SystemRole,
)
from tenancy.logging import get_logger
from tenancy.repositories import (
    FeatureRepository,
    PermissionRepository,
    RolePermissionRepository,
)

logger = get_logger(__name__)


def _changes(shape, payload: Mapping[str, Any], not_null: tuple[str, ...]) -> dict[str, Any]:
    data = validate_payload(shape, payload)
    changes = data.model_dump(exclude_unset=True)
    for field in not_null:
        if field in changes and changes[field] is None:
            raise ValidationError(f"{field} cannot be null")
    if not changes:
        raise ValidationError("No fields to update")
    return changes


class CatalogService:
    """Service for features, permissions and system role grants."""

    # =========================================================================
    # Features
    # =========================================================================

    def list_features(self, acting_user_id: UUID) -> list[Feature]:
        with tenant_session(acting_user_id) as session:
            return FeatureRepository(session).list_all()

    def create_feature(self, payload: Mapping[str, Any], acting_user_id: UUID) -> Feature:
        """Register a feature.

        Raises:
            AuthorizationError: Caller is not a super-admin
            ConflictError: Feature name is taken
        """
        data = validate_payload(FeatureCreate, payload)

        with tenant_session(acting_user_id) as session:
            require_super_admin(session, acting_user_id, "manage features")
            feature_repo = FeatureRepository(session)
            if feature_repo.get_by_name(data.name) is not None:
                raise ConflictError("Feature already exists", details={"name": data.name})
            try:
                feature = feature_repo.create(data)
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise translate_db_error(e, details={"name": data.name}) from e

            logger.info("feature_created", feature_id=str(feature.id), name=feature.name)
            return feature

    def update_feature(
        self, feature_id: UUID, payload: Mapping[str, Any], acting_user_id: UUID
    ) -> Feature:
        """Update display name, description or enabled flag. The name is fixed."""
        changes = _changes(FeatureUpdate, payload, ("display_name", "is_enabled"))

        with tenant_session(acting_user_id) as session:
            require_super_admin(session, acting_user_id, "manage features")
            feature_repo = FeatureRepository(session)
            feature = feature_repo.get(feature_id)
            if feature is None:
                raise NotFoundError("Feature not found", details={"feature_id": str(feature_id)})
            try:
                feature_repo.update(feature, **changes)
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise translate_db_error(e) from e

            logger.info("feature_updated", feature_id=str(feature_id), fields=sorted(changes))
            return feature

    def delete_feature(self, feature_id: UUID, acting_user_id: UUID) -> None:
        """Delete a feature, its permissions and every grant of them."""
        with tenant_session(acting_user_id) as session:
            require_super_admin(session, acting_user_id, "manage features")
            try:
                if not FeatureRepository(session).delete(feature_id):
                    raise NotFoundError(
                        "Feature not found", details={"feature_id": str(feature_id)}
                    )
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise translate_db_error(e) from e

            logger.info("feature_deleted", feature_id=str(feature_id))

    # =========================================================================
    # Permissions
    # =========================================================================

    def list_permissions(self, feature_id: UUID, acting_user_id: UUID) -> list[Permission]:
        with tenant_session(acting_user_id) as session:
            if FeatureRepository(session).get(feature_id) is None:
                raise NotFoundError("Feature not found", details={"feature_id": str(feature_id)})
            return PermissionRepository(session).list_by_feature(feature_id)

    def create_permission(
        self, feature_id: UUID, payload: Mapping[str, Any], acting_user_id: UUID
    ) -> Permission:
        """Add a permission to a feature.

        Raises:
            ConflictError: (feature, action, resource) already exists
        """
        data = validate_payload(PermissionCreate, scoped_payload(payload, feature_id=feature_id))

        with tenant_session(acting_user_id) as session:
            require_super_admin(session, acting_user_id, "manage permissions")
            if FeatureRepository(session).get(feature_id) is None:
                raise NotFoundError("Feature not found", details={"feature_id": str(feature_id)})
            try:
                permission = PermissionRepository(session).create(data)
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise translate_db_error(
                    e,
                    "Permission already exists for this feature, action and resource",
                    details={"action": data.action.value, "resource": data.resource},
                ) from e

            logger.info(
                "permission_created",
                permission_id=str(permission.id),
                feature_id=str(feature_id),
                action=permission.action,
                resource=permission.resource,
            )
            return permission

    def update_permission(
        self, permission_id: UUID, payload: Mapping[str, Any], acting_user_id: UUID
    ) -> Permission:
        """Update description or conditions. feature/action/resource are fixed."""
        changes = _changes(PermissionUpdate, payload, ())

        with tenant_session(acting_user_id) as session:
            require_super_admin(session, acting_user_id, "manage permissions")
            permission_repo = PermissionRepository(session)
            permission = permission_repo.get(permission_id)
            if permission is None:
                raise NotFoundError(
                    "Permission not found", details={"permission_id": str(permission_id)}
                )
            try:
                permission_repo.update(permission, **changes)
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise translate_db_error(e) from e

            logger.info(
                "permission_updated", permission_id=str(permission_id), fields=sorted(changes)
            )
            return permission

    def delete_permission(self, permission_id: UUID, acting_user_id: UUID) -> None:
        with tenant_session(acting_user_id) as session:
            require_super_admin(session, acting_user_id, "manage permissions")
            try:
                if not PermissionRepository(session).delete(permission_id):
                    raise NotFoundError(
                        "Permission not found", details={"permission_id": str(permission_id)}
                    )
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise translate_db_error(e) from e

            logger.info("permission_deleted", permission_id=str(permission_id))

    # =========================================================================
    # System role grants
    # =========================================================================

    def grant_system_role_permission(
        self, role_id: UUID, permission_id: UUID, acting_user_id: UUID
    ) -> RolePermission:
        """Grant a permission to Owner, Admin or Member in every workspace."""
        with tenant_session(acting_user_id) as session:
            require_super_admin(session, acting_user_id, "manage system role permissions")
            self._system_role(role_id)
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
                "system_role_permission_granted",
                role_id=str(role_id),
                permission_id=str(permission_id),
            )
            return grant

    def revoke_system_role_permission(
        self, role_id: UUID, permission_id: UUID, acting_user_id: UUID
    ) -> None:
        with tenant_session(acting_user_id) as session:
            require_super_admin(session, acting_user_id, "manage system role permissions")
            self._system_role(role_id)
            try:
                if not RolePermissionRepository(session).revoke(role_id, permission_id):
                    raise NotFoundError(
                        "Role does not hold this permission",
                        details={"role_id": str(role_id), "permission_id": str(permission_id)},
                    )
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise translate_db_error(e) from e

            logger.info(
                "system_role_permission_revoked",
                role_id=str(role_id),
                permission_id=str(permission_id),
            )

    def _system_role(self, role_id: UUID) -> SystemRole:
        role = SystemRole.from_id(role_id)
        if role is None:
            raise NotFoundError("System role not found", details={"role_id": str(role_id)})
        return role
