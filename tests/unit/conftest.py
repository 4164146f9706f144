"""Unit test configuration.

Unit tests run against an in-memory SQLite database. Row-level security
does not exist there, so these tests exercise the application-level
authorization only; tests/integration covers the database policies.
"""

import importlib
import os

# Set test environment variables before any imports
os.environ.setdefault("JWT_SECRET", "test-secret-for-unit-tests")

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel

from api.services import MembershipService, WorkspaceService
from tenancy.db import models  # noqa: F401
from tenancy.db.engine import build_engine
from tenancy.db.models import SystemRole, User
from tenancy.db.seed import seed_system_roles

db_engine = importlib.import_module("tenancy.db.engine")


@pytest.fixture
def test_engine(monkeypatch):
    """In-memory SQLite engine with the schema and system roles in place."""
    engine = build_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        seed_system_roles(session)
        session.commit()
    monkeypatch.setattr(db_engine, "engine", engine)
    yield engine
    engine.dispose()


@pytest.fixture
def make_user(test_engine):
    """Factory for mirrored users."""

    def _make(email: str, full_name: str = None, is_super_admin: bool = False) -> User:
        with Session(test_engine, expire_on_commit=False) as session:
            user = User(email=email, full_name=full_name, is_super_admin=is_super_admin)
            session.add(user)
            session.commit()
            return user

    return _make


@pytest.fixture
def owner(make_user):
    return make_user("owner@example.com", "Olivia Owner")


@pytest.fixture
def admin_user(make_user):
    return make_user("admin@example.com", "Adam Admin")


@pytest.fixture
def member_user(make_user):
    return make_user("member@example.com", "Mia Member")


@pytest.fixture
def outsider(make_user):
    return make_user("outsider@example.com", "Otto Outsider")


@pytest.fixture
def super_admin(make_user):
    return make_user("root@example.com", "Sam Super", is_super_admin=True)


@pytest.fixture
def workspace(owner):
    """Workspace owned by `owner` with no other members."""
    return WorkspaceService().create_workspace("Acme", owner.id)


@pytest.fixture
def staffed_workspace(workspace, owner, admin_user, member_user):
    """Workspace with an Admin and a Member besides the owner."""
    memberships = MembershipService()
    memberships.assign_role(workspace.id, admin_user.id, SystemRole.ADMIN.id, owner.id)
    memberships.assign_role(workspace.id, member_user.id, SystemRole.MEMBER.id, owner.id)
    return workspace
