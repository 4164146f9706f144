"""Role model and the system role registry.

Roles are assigned to users through workspace memberships. Two kinds exist:

- System roles (Owner, Admin, Member): global, is_system=True,
  workspace_id=NULL, seeded once with fixed identifiers and never
  renamed or deleted.
- Custom roles: scoped to a single workspace, is_system=False, managed
  by that workspace's Owner/Admin members.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from sqlalchemy import CheckConstraint, Index, UniqueConstraint, text
from sqlmodel import Field, SQLModel

from tenancy.db.models.base import UUIDModel, CreatedAtMixin, StrictShape

ROLE_NAME_MAX_LENGTH = 50
DESCRIPTION_MAX_LENGTH = 500


class SystemRole(str, Enum):
    """The three permanent system roles.

    Code refers to system roles through these members, never by
    re-deriving identifiers:
        SystemRole.OWNER.id
    """

    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"

    @property
    def id(self) -> UUID:
        return SYSTEM_ROLE_IDS[self]

    @property
    def description(self) -> str:
        return SYSTEM_ROLE_DESCRIPTIONS[self]

    @classmethod
    def from_id(cls, role_id: UUID) -> Optional["SystemRole"]:
        for role, known_id in SYSTEM_ROLE_IDS.items():
            if known_id == role_id:
                return role
        return None


SYSTEM_ROLE_IDS: dict[SystemRole, UUID] = {
    SystemRole.OWNER: UUID("00000000-0000-0000-0000-000000000001"),
    SystemRole.ADMIN: UUID("00000000-0000-0000-0000-000000000002"),
    SystemRole.MEMBER: UUID("00000000-0000-0000-0000-000000000003"),
}

SYSTEM_ROLE_DESCRIPTIONS: dict[SystemRole, str] = {
    SystemRole.OWNER: "Full control over the workspace",
    SystemRole.ADMIN: "Manages members, roles and workspace settings",
    SystemRole.MEMBER: "Basic workspace access",
}

# Roles allowed to manage memberships and custom roles
PRIVILEGED_ROLE_IDS: frozenset[UUID] = frozenset(
    {SYSTEM_ROLE_IDS[SystemRole.OWNER], SYSTEM_ROLE_IDS[SystemRole.ADMIN]}
)


class RoleBase(SQLModel):
    """Base role fields shared across Create/Read."""

    name: str = Field(max_length=ROLE_NAME_MAX_LENGTH)
    description: Optional[str] = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)


class Role(UUIDModel, RoleBase, CreatedAtMixin, table=True):
    """Role table.

    is_system <=> workspace_id IS NULL is enforced by a check constraint.
    Names are unique within their scope: per workspace for custom roles,
    globally among system roles.
    """

    __tablename__ = "roles"
    __table_args__ = (
        CheckConstraint(
            "(is_system AND workspace_id IS NULL) "
            "OR (NOT is_system AND workspace_id IS NOT NULL)",
            name="ck_roles_system_scope",
        ),
        CheckConstraint(
            f"length(name) BETWEEN 1 AND {ROLE_NAME_MAX_LENGTH}",
            name="ck_roles_name_length",
        ),
        UniqueConstraint("workspace_id", "name", name="uq_roles_workspace_name"),
        Index(
            "uq_roles_system_name",
            "name",
            unique=True,
            postgresql_where=text("workspace_id IS NULL"),
            sqlite_where=text("workspace_id IS NULL"),
        ),
    )

    is_system: bool = Field(default=False, index=True)
    workspace_id: Optional[UUID] = Field(
        default=None,
        foreign_key="workspaces.id",
        ondelete="CASCADE",
        index=True,
    )

    @property
    def system_role(self) -> Optional[SystemRole]:
        return SystemRole.from_id(self.id) if self.is_system else None


class RoleCreate(StrictShape):
    """Schema for creating a custom role.

    Custom roles always belong to a workspace; is_system is not accepted
    from callers.
    """

    name: str = Field(min_length=1, max_length=ROLE_NAME_MAX_LENGTH)
    description: Optional[str] = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    workspace_id: UUID


class RoleUpdate(StrictShape):
    """Schema for updating a custom role (is_system and workspace_id are fixed)."""

    name: Optional[str] = Field(
        default=None, min_length=1, max_length=ROLE_NAME_MAX_LENGTH
    )
    description: Optional[str] = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)


class RoleRead(RoleBase):
    """Schema for reading role data."""

    id: UUID
    is_system: bool
    workspace_id: Optional[UUID]
    created_at: datetime
