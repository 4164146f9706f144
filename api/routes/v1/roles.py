"""Workspace role routes.

System roles are listed alongside the workspace's custom roles; only
custom roles can be created, changed, deleted or granted permissions here.
"""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Body, status

from api.responses import ERROR_RESPONSES
from api.routes.v1.dependencies import WorkspaceCtx
from api.services.role_service import RoleService
from tenancy.db.models import PermissionRead, RoleRead


router = APIRouter(prefix="/v1", tags=["roles"], responses=ERROR_RESPONSES)


@router.get("/w/{workspace_id}/roles", response_model=list[RoleRead])
async def list_roles(ctx: WorkspaceCtx):
    """System roles plus this workspace's custom roles."""
    return RoleService().list_roles(ctx.workspace_id, ctx.user_id)


@router.post(
    "/w/{workspace_id}/roles",
    response_model=RoleRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_role(ctx: WorkspaceCtx, payload: dict[str, Any] = Body(...)):
    """Create a custom role. Owner or Admin only."""
    return RoleService().create_role(ctx.workspace_id, payload, ctx.user_id)


@router.patch("/w/{workspace_id}/roles/{role_id}", response_model=RoleRead)
async def update_role(
    role_id: UUID,
    ctx: WorkspaceCtx,
    payload: dict[str, Any] = Body(...),
):
    """Rename or re-describe a custom role. Owner or Admin only."""
    return RoleService().update_role(ctx.workspace_id, role_id, payload, ctx.user_id)


@router.delete(
    "/w/{workspace_id}/roles/{role_id}", status_code=status.HTTP_204_NO_CONTENT
)
async def delete_role(role_id: UUID, ctx: WorkspaceCtx):
    """Delete a custom role that no member holds. Owner or Admin only."""
    RoleService().delete_role(ctx.workspace_id, role_id, ctx.user_id)


@router.get(
    "/w/{workspace_id}/roles/{role_id}/permissions",
    response_model=list[PermissionRead],
)
async def list_role_permissions(role_id: UUID, ctx: WorkspaceCtx):
    """Permissions granted to a role."""
    return RoleService().list_role_permissions(ctx.workspace_id, role_id, ctx.user_id)


@router.put(
    "/w/{workspace_id}/roles/{role_id}/permissions/{permission_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def grant_role_permission(role_id: UUID, permission_id: UUID, ctx: WorkspaceCtx):
    """Grant a permission to a custom role. Granting twice is a no-op."""
    RoleService().grant_permission(ctx.workspace_id, role_id, permission_id, ctx.user_id)


@router.delete(
    "/w/{workspace_id}/roles/{role_id}/permissions/{permission_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def revoke_role_permission(role_id: UUID, permission_id: UUID, ctx: WorkspaceCtx):
    """Revoke a permission from a custom role."""
    RoleService().revoke_permission(ctx.workspace_id, role_id, permission_id, ctx.user_id)
