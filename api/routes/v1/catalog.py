"""Feature and permission catalog routes.

Reads are open to any authenticated user; writes (and system role
grants) are reserved to super-admins by the catalog service.
"""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Body, status

from api.responses import ERROR_RESPONSES
from api.routes.v1.dependencies import CurrentUserDep
from api.services.catalog_service import CatalogService
from tenancy.db.models import FeatureRead, PermissionRead


router = APIRouter(prefix="/v1", tags=["catalog"], responses=ERROR_RESPONSES)


# =============================================================================
# Features
# =============================================================================


@router.get("/features", response_model=list[FeatureRead])
async def list_features(current_user: CurrentUserDep):
    return CatalogService().list_features(current_user.user_id)


@router.post("/features", response_model=FeatureRead, status_code=status.HTTP_201_CREATED)
async def create_feature(current_user: CurrentUserDep, payload: dict[str, Any] = Body(...)):
    """Register a feature. Super-admin only."""
    return CatalogService().create_feature(payload, current_user.user_id)


@router.patch("/features/{feature_id}", response_model=FeatureRead)
async def update_feature(
    feature_id: UUID,
    current_user: CurrentUserDep,
    payload: dict[str, Any] = Body(...),
):
    """Update a feature (its name is fixed). Super-admin only."""
    return CatalogService().update_feature(feature_id, payload, current_user.user_id)


@router.delete("/features/{feature_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_feature(feature_id: UUID, current_user: CurrentUserDep):
    """Delete a feature and its permissions. Super-admin only."""
    CatalogService().delete_feature(feature_id, current_user.user_id)


# =============================================================================
# Permissions
# =============================================================================


@router.get("/features/{feature_id}/permissions", response_model=list[PermissionRead])
async def list_permissions(feature_id: UUID, current_user: CurrentUserDep):
    return CatalogService().list_permissions(feature_id, current_user.user_id)


@router.post(
    "/features/{feature_id}/permissions",
    response_model=PermissionRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_permission(
    feature_id: UUID,
    current_user: CurrentUserDep,
    payload: dict[str, Any] = Body(...),
):
    """Add a permission to a feature. Super-admin only."""
    return CatalogService().create_permission(feature_id, payload, current_user.user_id)


@router.patch("/permissions/{permission_id}", response_model=PermissionRead)
async def update_permission(
    permission_id: UUID,
    current_user: CurrentUserDep,
    payload: dict[str, Any] = Body(...),
):
    """Update a permission's description or conditions. Super-admin only."""
    return CatalogService().update_permission(permission_id, payload, current_user.user_id)


@router.delete("/permissions/{permission_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_permission(permission_id: UUID, current_user: CurrentUserDep):
    CatalogService().delete_permission(permission_id, current_user.user_id)


# =============================================================================
# System role grants
# =============================================================================


@router.put(
    "/system-roles/{role_id}/permissions/{permission_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def grant_system_role_permission(
    role_id: UUID, permission_id: UUID, current_user: CurrentUserDep
):
    """Grant a permission to a system role. Super-admin only."""
    CatalogService().grant_system_role_permission(role_id, permission_id, current_user.user_id)


@router.delete(
    "/system-roles/{role_id}/permissions/{permission_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def revoke_system_role_permission(
    role_id: UUID, permission_id: UUID, current_user: CurrentUserDep
):
    """Revoke a permission from a system role. Super-admin only."""
    CatalogService().revoke_system_role_permission(
        role_id, permission_id, current_user.user_id
    )
