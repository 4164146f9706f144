"""SQLModel table definitions.

This module exports all SQLModel table classes and their Create/Update/Read
shapes. Entity tables use UUID primary keys; junction tables use composite
keys.

Model Categories:
- Identity: User
- Multi-tenancy: Workspace, WorkspaceMembership
- RBAC catalog: Role, SystemRole, Feature, Permission, RolePermission
"""

# Base classes
from tenancy.db.models.base import UUIDModel, TimestampMixin, CreatedAtMixin, StrictShape

# Identity
from tenancy.db.models.user import User, UserCreate, UserRead

# Multi-tenancy models
from tenancy.db.models.workspace import (
    Workspace, WorkspaceCreate, WorkspaceUpdate, WorkspaceRead,
)
from tenancy.db.models.membership import (
    WorkspaceMembership, WorkspaceMembershipCreate,
    WorkspaceMembershipUpdate, WorkspaceMembershipRead,
)

# RBAC catalog
from tenancy.db.models.role import (
    Role, RoleCreate, RoleUpdate, RoleRead,
    SystemRole, SYSTEM_ROLE_IDS, PRIVILEGED_ROLE_IDS,
)
from tenancy.db.models.permission import (
    PermissionAction,
    Feature, FeatureCreate, FeatureUpdate, FeatureRead,
    Permission, PermissionCreate, PermissionUpdate, PermissionRead,
    RolePermission, RolePermissionCreate,
)

__all__ = [
    # Base
    "UUIDModel",
    "TimestampMixin",
    "CreatedAtMixin",
    "StrictShape",
    # Identity
    "User", "UserCreate", "UserRead",
    # Multi-tenancy
    "Workspace", "WorkspaceCreate", "WorkspaceUpdate", "WorkspaceRead",
    "WorkspaceMembership", "WorkspaceMembershipCreate",
    "WorkspaceMembershipUpdate", "WorkspaceMembershipRead",
    # RBAC
    "Role", "RoleCreate", "RoleUpdate", "RoleRead",
    "SystemRole", "SYSTEM_ROLE_IDS", "PRIVILEGED_ROLE_IDS",
    "PermissionAction",
    "Feature", "FeatureCreate", "FeatureUpdate", "FeatureRead",
    "Permission", "PermissionCreate", "PermissionUpdate", "PermissionRead",
    "RolePermission", "RolePermissionCreate",
]
