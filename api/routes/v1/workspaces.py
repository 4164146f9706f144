"""Workspace management routes.

Routes for workspace CRUD, ownership transfer, abilities and member
management. Authorization happens in the services.
"""

from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Body, status
from pydantic import BaseModel, ConfigDict, Field

from api.responses import ERROR_RESPONSES
from api.routes.v1.dependencies import CurrentUserDep, WorkspaceCtx
from api.services.membership_service import MembershipService
from api.services.workspace_service import WorkspaceService
from tenancy.db.models import WorkspaceMembershipRead, WorkspaceRead
from tenancy.db.models.workspace import WORKSPACE_NAME_MAX_LENGTH


router = APIRouter(prefix="/v1", tags=["workspaces"], responses=ERROR_RESPONSES)


# =============================================================================
# Request/Response Models
# =============================================================================


class CreateWorkspaceRequest(BaseModel):
    """Request to create a new workspace. The caller becomes the owner."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=WORKSPACE_NAME_MAX_LENGTH)


class TransferOwnershipRequest(BaseModel):
    """Request to hand the workspace to another member."""

    model_config = ConfigDict(extra="forbid")

    new_owner_id: UUID


class AssignRoleRequest(BaseModel):
    """Request to add a user to the workspace with a role."""

    model_config = ConfigDict(extra="forbid")

    user_id: UUID
    role_id: UUID


class UpdateMemberRoleRequest(BaseModel):
    """Request to change a member's role."""

    model_config = ConfigDict(extra="forbid")

    role_id: UUID


class GrantRead(BaseModel):
    feature: str
    action: str
    resource: str
    conditions: Optional[dict[str, Any]] = None


class AbilitiesRead(BaseModel):
    """The caller's resolved permissions in a workspace."""

    workspace_id: Optional[UUID]
    role_id: Optional[UUID]
    full_access: bool
    grants: list[GrantRead]


# =============================================================================
# User's Workspaces (no workspace_id in path)
# =============================================================================


@router.get("/workspaces", response_model=list[WorkspaceRead])
async def list_my_workspaces(current_user: CurrentUserDep):
    """List all workspaces the current user is a member of."""
    return WorkspaceService().list_user_workspaces(current_user.user_id)


@router.post(
    "/workspaces", response_model=WorkspaceRead, status_code=status.HTTP_201_CREATED
)
async def create_workspace(
    request: CreateWorkspaceRequest,
    current_user: CurrentUserDep,
):
    """Create a new workspace.

    The current user becomes the owner.
    """
    return WorkspaceService().create_workspace(
        name=request.name, owner_id=current_user.user_id
    )


# =============================================================================
# Workspace-scoped routes (with workspace_id in path)
# =============================================================================


@router.get("/w/{workspace_id}", response_model=WorkspaceRead)
async def get_workspace(ctx: WorkspaceCtx):
    """Get workspace details. Members only."""
    return WorkspaceService().get_workspace(ctx.workspace_id, ctx.user_id)


@router.patch("/w/{workspace_id}", response_model=WorkspaceRead)
async def update_workspace(
    ctx: WorkspaceCtx,
    payload: dict[str, Any] = Body(...),
):
    """Update workspace settings. Owner only; only the name can change."""
    return WorkspaceService().update_workspace(ctx.workspace_id, payload, ctx.user_id)


@router.delete("/w/{workspace_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_workspace(ctx: WorkspaceCtx):
    """Delete workspace with its memberships and custom roles. Owner only."""
    WorkspaceService().delete_workspace(ctx.workspace_id, ctx.user_id)


@router.post("/w/{workspace_id}/transfer-ownership", response_model=WorkspaceRead)
async def transfer_ownership(request: TransferOwnershipRequest, ctx: WorkspaceCtx):
    """Transfer ownership to another member. The previous owner becomes Admin."""
    return WorkspaceService().transfer_ownership(
        ctx.workspace_id, request.new_owner_id, ctx.user_id
    )


@router.get("/w/{workspace_id}/abilities", response_model=AbilitiesRead)
async def get_abilities(ctx: WorkspaceCtx):
    """The caller's permissions in this workspace (empty for non-members)."""
    abilities = WorkspaceService().resolve_abilities(ctx.user_id, ctx.workspace_id)
    return abilities.to_dict()


# =============================================================================
# Member Management
# =============================================================================


@router.get("/w/{workspace_id}/members", response_model=list[WorkspaceMembershipRead])
async def list_members(ctx: WorkspaceCtx):
    """List all members of the workspace."""
    return MembershipService().list_members(ctx.workspace_id, ctx.user_id)


@router.post(
    "/w/{workspace_id}/members",
    response_model=WorkspaceMembershipRead,
    status_code=status.HTTP_201_CREATED,
)
async def add_member(request: AssignRoleRequest, ctx: WorkspaceCtx):
    """Add a user to the workspace. Owner or Admin only."""
    return MembershipService().assign_role(
        workspace_id=ctx.workspace_id,
        user_id=request.user_id,
        role_id=request.role_id,
        invited_by=ctx.user_id,
    )


@router.patch(
    "/w/{workspace_id}/members/{user_id}", response_model=WorkspaceMembershipRead
)
async def update_member_role(
    user_id: UUID,
    request: UpdateMemberRoleRequest,
    ctx: WorkspaceCtx,
):
    """Change a member's role.

    Owner or Admin only. Nobody changes their own role, and the owner's
    role only changes through transfer-ownership.
    """
    return MembershipService().update_role(
        workspace_id=ctx.workspace_id,
        user_id=user_id,
        new_role_id=request.role_id,
        acting_user_id=ctx.user_id,
    )


@router.delete(
    "/w/{workspace_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT
)
async def remove_member(user_id: UUID, ctx: WorkspaceCtx):
    """Remove a member. Owner or Admin only; the owner cannot be removed."""
    MembershipService().remove_member(ctx.workspace_id, user_id, ctx.user_id)


@router.post("/w/{workspace_id}/leave", status_code=status.HTTP_204_NO_CONTENT)
async def leave_workspace(ctx: WorkspaceCtx):
    """Leave the workspace. The owner must transfer ownership first."""
    MembershipService().leave_workspace(ctx.workspace_id, ctx.user_id)
