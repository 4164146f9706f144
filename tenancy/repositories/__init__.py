"""Repositories for tenancy tables.

Repositories stage changes (add + flush) and never commit: the calling
service owns the transaction, so a multi-step operation either lands
completely or not at all.
"""

from tenancy.repositories.workspace_repository import (
    UserRepository,
    WorkspaceRepository,
    WorkspaceMembershipRepository,
)
from tenancy.repositories.role_repository import RoleRepository
from tenancy.repositories.permission_repository import (
    FeatureRepository,
    PermissionRepository,
    RolePermissionRepository,
)

__all__ = [
    "UserRepository",
    "WorkspaceRepository",
    "WorkspaceMembershipRepository",
    "RoleRepository",
    "FeatureRepository",
    "PermissionRepository",
    "RolePermissionRepository",
]
