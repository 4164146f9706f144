"""Shared fixtures for integration tests.

Each test gets its own PostgreSQL schema with the tables, the system
roles and the row-level security policies installed, exactly as the
migrations would leave a fresh database.
"""

import importlib

import pytest
from sqlmodel import Session, SQLModel

from tenancy.db import models  # noqa: F401
from tenancy.db.isolation import install_policies
from tenancy.db.models import User
from tenancy.db.seed import seed_system_roles

from tests.db_utils import create_test_engine, drop_test_schema

db_engine = importlib.import_module("tenancy.db.engine")


@pytest.fixture
def test_engine(monkeypatch):
    """Create and configure a test database engine with isolation installed."""
    engine, schema_name, database_url = create_test_engine()
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        seed_system_roles(session)
        session.commit()
    with engine.begin() as connection:
        install_policies(connection)
    monkeypatch.setattr(db_engine, "engine", engine)
    yield engine
    engine.dispose()
    drop_test_schema(database_url, schema_name)


@pytest.fixture
def make_user(test_engine):
    """Mirror users as the table owner (no tenant context)."""

    def _make(email: str, is_super_admin: bool = False) -> User:
        with Session(test_engine, expire_on_commit=False) as session:
            user = User(email=email, is_super_admin=is_super_admin)
            session.add(user)
            session.commit()
            return user

    return _make


@pytest.fixture
def owner(make_user):
    return make_user("owner@example.com")


@pytest.fixture
def admin_user(make_user):
    return make_user("admin@example.com")


@pytest.fixture
def member_user(make_user):
    return make_user("member@example.com")


@pytest.fixture
def outsider(make_user):
    return make_user("outsider@example.com")


@pytest.fixture
def super_admin(make_user):
    return make_user("root@example.com", is_super_admin=True)
