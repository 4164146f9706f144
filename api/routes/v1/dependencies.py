"""Dependencies for workspace-scoped routes.

Provides FastAPI dependencies to:
- Extract workspace_id from URL path
- Inject the authenticated caller alongside it

Membership and role checks happen in the services, against the live
database state, so routes never decide authorization themselves.
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Path

from api.auth.dependencies import CurrentUser, get_current_user
from tenancy.logging import bind_context


class WorkspaceContext:
    """Container for workspace context in route handlers."""

    def __init__(self, workspace_id: UUID, current_user: CurrentUser):
        self.workspace_id = workspace_id
        self.current_user = current_user

    @property
    def user_id(self) -> UUID:
        return self.current_user.user_id


async def get_workspace_context(
    workspace_id: Annotated[UUID, Path(description="Workspace UUID")],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> WorkspaceContext:
    """Get workspace context from URL path parameter.

    Usage:
        @router.get("/w/{workspace_id}/members")
        async def list_members(ctx: WorkspaceCtx):
            return MembershipService().list_members(ctx.workspace_id, ctx.user_id)
    """
    bind_context(workspace_id=workspace_id)
    return WorkspaceContext(workspace_id=workspace_id, current_user=current_user)


# Type aliases for cleaner route signatures
WorkspaceCtx = Annotated[WorkspaceContext, Depends(get_workspace_context)]
CurrentUserDep = Annotated[CurrentUser, Depends(get_current_user)]
