"""Repository for roles (system and workspace-scoped custom roles)."""

from typing import Optional
from uuid import UUID

from sqlalchemy import delete, or_
from sqlmodel import Session, select

from tenancy.db.models import Role, RoleCreate


class RoleRepository:
    """Repository for Role operations."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, data: RoleCreate) -> Role:
        """Stage a new custom role for a workspace."""
        role = Role.model_validate({**data.model_dump(), "is_system": False})
        self.session.add(role)
        self.session.flush()
        return role

    def get(self, role_id: UUID) -> Optional[Role]:
        return self.session.get(Role, role_id)

    def get_by_name(self, workspace_id: Optional[UUID], name: str) -> Optional[Role]:
        """Find a role by name within a scope (None = system scope)."""
        if workspace_id is None:
            scope = Role.workspace_id.is_(None)
        else:
            scope = Role.workspace_id == workspace_id
        statement = select(Role).where(scope, Role.name == name)
        return self.session.exec(statement).first()

    def list_system(self) -> list[Role]:
        statement = select(Role).where(Role.is_system == True).order_by(Role.id)  # noqa: E712
        return list(self.session.exec(statement).all())

    def list_for_workspace(self, workspace_id: UUID) -> list[Role]:
        """System roles plus the workspace's custom roles."""
        statement = (
            select(Role)
            .where(or_(Role.workspace_id.is_(None), Role.workspace_id == workspace_id))
            .order_by(Role.is_system.desc(), Role.name)
        )
        return list(self.session.exec(statement).all())

    def update(self, role: Role, **kwargs) -> Role:
        for key, value in kwargs.items():
            if hasattr(role, key):
                setattr(role, key, value)
        self.session.add(role)
        self.session.flush()
        return role

    def delete(self, role_id: UUID) -> bool:
        """Delete a custom role. System roles are never matched."""
        result = self.session.execute(
            delete(Role).where(Role.id == role_id, Role.is_system == False)  # noqa: E712
        )
        return result.rowcount > 0
