"""Workspace model for multi-tenancy.

Workspaces are the boundary of data isolation. All protected data belongs
to exactly one workspace. Users can belong to multiple workspaces via
WorkspaceMembership (see membership.py).
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import CheckConstraint
from sqlmodel import Field, SQLModel

from tenancy.db.models.base import UUIDModel, TimestampMixin, StrictShape

WORKSPACE_NAME_MAX_LENGTH = 100


class WorkspaceBase(SQLModel):
    """Base workspace fields shared across Create/Read."""

    name: str = Field(index=True, max_length=WORKSPACE_NAME_MAX_LENGTH)


class Workspace(UUIDModel, WorkspaceBase, TimestampMixin, table=True):
    """Workspace table - the boundary of data isolation.

    Each workspace has exactly one owner. The owner always holds a
    membership with the Owner system role; that membership is created
    in the same transaction as the workspace.
    """

    __tablename__ = "workspaces"
    __table_args__ = (
        CheckConstraint(
            f"length(name) BETWEEN 1 AND {WORKSPACE_NAME_MAX_LENGTH}",
            name="ck_workspaces_name_length",
        ),
    )

    owner_id: UUID = Field(foreign_key="users.id", index=True)


class WorkspaceCreate(StrictShape):
    """Schema for creating a new workspace."""

    name: str = Field(min_length=1, max_length=WORKSPACE_NAME_MAX_LENGTH)
    owner_id: UUID


class WorkspaceUpdate(StrictShape):
    """Schema for updating a workspace.

    owner_id is deliberately absent: ownership only changes through
    transfer_ownership.
    """

    name: Optional[str] = Field(
        default=None, min_length=1, max_length=WORKSPACE_NAME_MAX_LENGTH
    )


class WorkspaceRead(WorkspaceBase):
    """Schema for reading workspace data."""

    id: UUID
    owner_id: UUID
    created_at: datetime
    updated_at: Optional[datetime] = None
