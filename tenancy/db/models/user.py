"""User model.

Users are owned by the external identity provider. This table is a local
mirror holding the stable identifier plus the few profile fields the
authorization core needs (email, super-admin flag).
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import EmailStr
from sqlmodel import Field, SQLModel

from tenancy.db.models.base import UUIDModel, TimestampMixin, StrictShape


class UserBase(SQLModel):
    """Base user fields shared across Create/Read."""

    email: str = Field(unique=True, index=True, max_length=320)
    full_name: Optional[str] = Field(default=None, max_length=200)


class User(UUIDModel, UserBase, TimestampMixin, table=True):
    """User table - global identity.

    Users can belong to many workspaces via workspace_memberships,
    holding a different role in each.
    """

    __tablename__ = "users"

    # Catalog administration only (features/permissions, system role grants).
    # Never grants access to workspace data.
    is_super_admin: bool = Field(default=False)


class UserCreate(StrictShape):
    """Schema for mirroring a user from the identity provider."""

    id: Optional[UUID] = None
    email: EmailStr
    full_name: Optional[str] = Field(default=None, max_length=200)
    is_super_admin: bool = False


class UserRead(UserBase):
    """Schema for reading user data."""

    id: UUID
    is_super_admin: bool
    created_at: datetime
