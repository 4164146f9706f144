"""Repositories for the feature/permission catalog and role grants."""

from typing import Optional
from uuid import UUID

from sqlalchemy import delete
from sqlmodel import Session, select

from tenancy.db.models import (
    Feature,
    FeatureCreate,
    Permission,
    PermissionCreate,
    RolePermission,
)


# =============================================================================
# Feature Repository
# =============================================================================


class FeatureRepository:
    """Repository for Feature operations."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, data: FeatureCreate) -> Feature:
        feature = Feature.model_validate(data)
        self.session.add(feature)
        self.session.flush()
        return feature

    def get(self, feature_id: UUID) -> Optional[Feature]:
        return self.session.get(Feature, feature_id)

    def get_by_name(self, name: str) -> Optional[Feature]:
        statement = select(Feature).where(Feature.name == name)
        return self.session.exec(statement).first()

    def list_all(self) -> list[Feature]:
        statement = select(Feature).order_by(Feature.name)
        return list(self.session.exec(statement).all())

    def update(self, feature: Feature, **kwargs) -> Feature:
        for key, value in kwargs.items():
            if hasattr(feature, key):
                setattr(feature, key, value)
        self.session.add(feature)
        self.session.flush()
        return feature

    def delete(self, feature_id: UUID) -> bool:
        """Delete a feature; its permissions and their grants cascade."""
        result = self.session.execute(delete(Feature).where(Feature.id == feature_id))
        return result.rowcount > 0


# =============================================================================
# Permission Repository
# =============================================================================


class PermissionRepository:
    """Repository for Permission operations."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, data: PermissionCreate) -> Permission:
        values = data.model_dump()
        values["action"] = data.action.value
        permission = Permission.model_validate(values)
        self.session.add(permission)
        self.session.flush()
        return permission

    def get(self, permission_id: UUID) -> Optional[Permission]:
        return self.session.get(Permission, permission_id)

    def list_by_feature(self, feature_id: UUID) -> list[Permission]:
        statement = (
            select(Permission)
            .where(Permission.feature_id == feature_id)
            .order_by(Permission.resource, Permission.action)
        )
        return list(self.session.exec(statement).all())

    def update(self, permission: Permission, **kwargs) -> Permission:
        for key, value in kwargs.items():
            if hasattr(permission, key):
                setattr(permission, key, value)
        self.session.add(permission)
        self.session.flush()
        return permission

    def delete(self, permission_id: UUID) -> bool:
        result = self.session.execute(
            delete(Permission).where(Permission.id == permission_id)
        )
        return result.rowcount > 0


# =============================================================================
# Role Permission Repository
# =============================================================================


class RolePermissionRepository:
    """Repository for role -> permission grants."""

    def __init__(self, session: Session):
        self.session = session

    def grant(self, role_id: UUID, permission_id: UUID) -> RolePermission:
        """Stage a grant. Granting twice returns the existing row."""
        existing = self.session.get(RolePermission, (role_id, permission_id))
        if existing:
            return existing
        grant = RolePermission(role_id=role_id, permission_id=permission_id)
        self.session.add(grant)
        self.session.flush()
        return grant

    def revoke(self, role_id: UUID, permission_id: UUID) -> bool:
        result = self.session.execute(
            delete(RolePermission).where(
                RolePermission.role_id == role_id,
                RolePermission.permission_id == permission_id,
            )
        )
        return result.rowcount > 0

    def list_permissions(self, role_id: UUID) -> list[Permission]:
        statement = (
            select(Permission)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .where(RolePermission.role_id == role_id)
            .order_by(Permission.resource, Permission.action)
        )
        return list(self.session.exec(statement).all())
