"""Feature, Permission and RolePermission models.

A Feature is a protectable capability domain (e.g. "boards"). Each
Permission grants one action on one resource type inside a feature,
optionally narrowed by equality conditions on the resource's fields.
Roles receive permissions through the role_permissions junction.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import JSON, CheckConstraint, Column, DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel

from tenancy.db.models.base import UUIDModel, CreatedAtMixin, StrictShape, utc_now

FEATURE_NAME_MAX_LENGTH = 50
DISPLAY_NAME_MAX_LENGTH = 100
RESOURCE_MAX_LENGTH = 50
DESCRIPTION_MAX_LENGTH = 500


class PermissionAction(str, Enum):
    """Actions a permission can grant.

    manage implies every other action on the same resource.
    """

    create = "create"
    read = "read"
    update = "update"
    delete = "delete"
    manage = "manage"


_ACTION_VALUES = ", ".join(f"'{action.value}'" for action in PermissionAction)


# =============================================================================
# Feature
# =============================================================================


class FeatureBase(SQLModel):
    """Base feature fields shared across Create/Read."""

    name: str = Field(unique=True, index=True, max_length=FEATURE_NAME_MAX_LENGTH)
    display_name: str = Field(max_length=DISPLAY_NAME_MAX_LENGTH)
    description: Optional[str] = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    is_enabled: bool = Field(default=True, index=True)


class Feature(UUIDModel, FeatureBase, CreatedAtMixin, table=True):
    """Feature table. The name is the stable identifier and never changes."""

    __tablename__ = "features"


class FeatureCreate(StrictShape):
    """Schema for registering a feature."""

    name: str = Field(min_length=1, max_length=FEATURE_NAME_MAX_LENGTH)
    display_name: str = Field(min_length=1, max_length=DISPLAY_NAME_MAX_LENGTH)
    description: Optional[str] = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    is_enabled: bool = True


class FeatureUpdate(StrictShape):
    """Schema for updating a feature (name is immutable)."""

    display_name: Optional[str] = Field(
        default=None, min_length=1, max_length=DISPLAY_NAME_MAX_LENGTH
    )
    description: Optional[str] = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    is_enabled: Optional[bool] = None


class FeatureRead(FeatureBase):
    """Schema for reading feature data."""

    id: UUID
    created_at: datetime


# =============================================================================
# Permission
# =============================================================================


class Permission(UUIDModel, CreatedAtMixin, table=True):
    """Permission table.

    (feature_id, action, resource) is unique. Deleting a feature deletes
    its permissions, which in turn removes them from every role.
    """

    __tablename__ = "permissions"
    __table_args__ = (
        UniqueConstraint(
            "feature_id", "action", "resource", name="uq_permissions_feature_action_resource"
        ),
        CheckConstraint(f"action IN ({_ACTION_VALUES})", name="ck_permissions_action"),
    )

    feature_id: UUID = Field(foreign_key="features.id", ondelete="CASCADE", index=True)
    action: str = Field(max_length=16)
    resource: str = Field(max_length=RESOURCE_MAX_LENGTH)
    description: Optional[str] = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)

    # Equality conditions on resource fields, e.g. {"created_by": "$user_id"}
    # Note: JSON rather than JSONB so the same model works on SQLite in tests.
    conditions: Optional[dict[str, Any]] = Field(
        default=None,
        sa_column=Column(JSON, nullable=True),
    )


class PermissionCreate(StrictShape):
    """Schema for creating a permission."""

    feature_id: UUID
    action: PermissionAction
    resource: str = Field(min_length=1, max_length=RESOURCE_MAX_LENGTH)
    description: Optional[str] = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    conditions: Optional[dict[str, Any]] = None


class PermissionUpdate(StrictShape):
    """Schema for updating a permission.

    feature_id, action and resource identify the permission and are fixed.
    """

    description: Optional[str] = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    conditions: Optional[dict[str, Any]] = None


class PermissionRead(SQLModel):
    """Schema for reading permission data."""

    id: UUID
    feature_id: UUID
    action: PermissionAction
    resource: str
    description: Optional[str] = None
    conditions: Optional[dict[str, Any]] = None
    created_at: datetime


# =============================================================================
# Role <-> Permission junction
# =============================================================================


class RolePermission(SQLModel, table=True):
    """Grants a permission to a role. No lifecycle beyond its endpoints."""

    __tablename__ = "role_permissions"

    role_id: UUID = Field(foreign_key="roles.id", ondelete="CASCADE", primary_key=True)
    permission_id: UUID = Field(
        foreign_key="permissions.id", ondelete="CASCADE", primary_key=True
    )
    granted_at: datetime = Field(
        default_factory=utc_now, sa_type=DateTime(timezone=True), nullable=False
    )


class RolePermissionCreate(StrictShape):
    """Schema for granting a permission to a role."""

    role_id: UUID
    permission_id: UUID
