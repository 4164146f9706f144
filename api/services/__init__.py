"""API services module."""

from api.services.workspace_service import WorkspaceService
from api.services.membership_service import MembershipService
from api.services.role_service import RoleService
from api.services.catalog_service import CatalogService

__all__ = [
    "WorkspaceService",
    "MembershipService",
    "RoleService",
    "CatalogService",
]
