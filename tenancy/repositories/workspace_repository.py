"""Repository classes for User, Workspace and WorkspaceMembership.

These repositories handle multi-tenancy operations:
- Workspace CRUD
- Membership management (role assignment, role changes, removal)
"""

from typing import Optional
from uuid import UUID

from sqlalchemy import delete, func
from sqlmodel import Session, select

from tenancy.db.models import (
    User,
    UserCreate,
    Workspace,
    WorkspaceCreate,
    WorkspaceMembership,
    WorkspaceMembershipCreate,
)
from tenancy.db.models.base import utc_now


# =============================================================================
# User Repository
# =============================================================================


class UserRepository:
    """Repository for the local user mirror."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, data: UserCreate) -> User:
        values = data.model_dump(exclude_none=True)
        user = User.model_validate(values)
        self.session.add(user)
        self.session.flush()
        return user

    def get(self, user_id: UUID) -> Optional[User]:
        return self.session.get(User, user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        statement = select(User).where(User.email == email)
        return self.session.exec(statement).first()


# =============================================================================
# Workspace Repository
# =============================================================================


class WorkspaceRepository:
    """Repository for Workspace operations."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, data: WorkspaceCreate) -> Workspace:
        """Stage a new workspace."""
        workspace = Workspace.model_validate(data)
        self.session.add(workspace)
        self.session.flush()
        return workspace

    def get(self, workspace_id: UUID) -> Optional[Workspace]:
        """Get a workspace by ID."""
        return self.session.get(Workspace, workspace_id)

    def list_by_user(self, user_id: UUID) -> list[Workspace]:
        """List all workspaces a user belongs to (via memberships)."""
        statement = (
            select(Workspace)
            .join(
                WorkspaceMembership,
                Workspace.id == WorkspaceMembership.workspace_id,
            )
            .where(WorkspaceMembership.user_id == user_id)
            .order_by(Workspace.created_at)
        )
        return list(self.session.exec(statement).all())

    def update(self, workspace: Workspace, **kwargs) -> Workspace:
        """Update workspace fields."""
        for key, value in kwargs.items():
            if hasattr(workspace, key):
                setattr(workspace, key, value)
        workspace.updated_at = utc_now()
        self.session.add(workspace)
        self.session.flush()
        return workspace

    def delete(self, workspace_id: UUID) -> bool:
        """Delete a workspace by ID. Returns True if a row was deleted.

        Memberships and custom roles go with it (ON DELETE CASCADE).
        """
        result = self.session.execute(
            delete(Workspace).where(Workspace.id == workspace_id)
        )
        return result.rowcount > 0


# =============================================================================
# Workspace Membership Repository
# =============================================================================


class WorkspaceMembershipRepository:
    """Repository for WorkspaceMembership operations."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, data: WorkspaceMembershipCreate) -> WorkspaceMembership:
        """Stage a new membership."""
        membership = WorkspaceMembership.model_validate(data)
        self.session.add(membership)
        self.session.flush()
        return membership

    def get(self, workspace_id: UUID, user_id: UUID) -> Optional[WorkspaceMembership]:
        """Get the membership for a specific workspace and user."""
        return self.session.get(WorkspaceMembership, (workspace_id, user_id))

    def list_by_workspace(self, workspace_id: UUID) -> list[WorkspaceMembership]:
        """List all members of a workspace, oldest first."""
        statement = (
            select(WorkspaceMembership)
            .where(WorkspaceMembership.workspace_id == workspace_id)
            .order_by(WorkspaceMembership.joined_at)
        )
        return list(self.session.exec(statement).all())

    def count_by_role(self, role_id: UUID) -> int:
        """Number of memberships holding a role."""
        statement = select(func.count()).select_from(WorkspaceMembership).where(
            WorkspaceMembership.role_id == role_id
        )
        return self.session.exec(statement).one()

    def update_role(
        self, membership: WorkspaceMembership, role_id: UUID
    ) -> WorkspaceMembership:
        """Change a member's role. The only mutable membership column."""
        membership.role_id = role_id
        self.session.add(membership)
        self.session.flush()
        return membership

    def delete(self, workspace_id: UUID, user_id: UUID) -> bool:
        """Delete a membership. Returns True if a row was deleted."""
        result = self.session.execute(
            delete(WorkspaceMembership).where(
                WorkspaceMembership.workspace_id == workspace_id,
                WorkspaceMembership.user_id == user_id,
            )
        )
        return result.rowcount > 0
