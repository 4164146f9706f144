"""Workspace membership model for multi-tenancy RBAC.

Links users to workspaces with exactly one role each. A user may belong
to many workspaces and hold a different role in each one.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import DateTime, Index
from sqlmodel import Field, SQLModel

from tenancy.db.models.base import StrictShape, utc_now


class WorkspaceMembershipBase(SQLModel):
    """Base membership fields shared across Create/Read."""

    role_id: UUID = Field(foreign_key="roles.id", index=True)


class WorkspaceMembership(WorkspaceMembershipBase, table=True):
    """Workspace membership table - links users to workspaces.

    This is the junction table that enables multi-tenancy and the table
    every isolation policy consults. The composite primary key makes
    (workspace_id, user_id) unique: one role per user per workspace.

    role_id has no ON DELETE action, so a role that is still assigned
    cannot be deleted.
    """

    __tablename__ = "workspace_memberships"
    __table_args__ = (
        # Isolation predicate lookup: "does the caller belong to workspace X"
        Index("ix_workspace_memberships_user_workspace", "user_id", "workspace_id"),
    )

    workspace_id: UUID = Field(
        foreign_key="workspaces.id", ondelete="CASCADE", primary_key=True
    )
    user_id: UUID = Field(foreign_key="users.id", ondelete="CASCADE", primary_key=True)

    # Who added this member; equals user_id for the owner's bootstrap row
    invited_by: Optional[UUID] = Field(
        default=None, foreign_key="users.id", ondelete="SET NULL"
    )
    joined_at: datetime = Field(
        default_factory=utc_now, sa_type=DateTime(timezone=True), nullable=False
    )


class WorkspaceMembershipCreate(StrictShape):
    """Schema for creating a membership (assigning a role)."""

    workspace_id: UUID
    user_id: UUID
    role_id: UUID
    invited_by: UUID


class WorkspaceMembershipUpdate(StrictShape):
    """Schema for updating a membership: only the role can change."""

    role_id: UUID


class WorkspaceMembershipRead(WorkspaceMembershipBase):
    """Schema for reading workspace membership data."""

    workspace_id: UUID
    user_id: UUID
    invited_by: Optional[UUID]
    joined_at: datetime
