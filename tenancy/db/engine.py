"""SQLModel engine and session management.

This module provides:
- Database engine creation with connection pooling
- Session factory for dependency injection
- Database initialization utilities

PostgreSQL is the primary database. SQLite is accepted for the unit
tests only; it has no row-level security.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from tenancy.config import DATABASE_URL


def build_engine(url: str = DATABASE_URL, **kwargs) -> Engine:
    """Create an engine for the given URL.

    PostgreSQL gets connection pooling; pool_pre_ping ensures connections
    are valid before use. SQLite gets foreign key enforcement switched on,
    which it leaves off by default.
    """
    if url.startswith("sqlite"):
        new_engine = create_engine(url, echo=False, **kwargs)
        event.listen(new_engine, "connect", _enable_sqlite_foreign_keys)
        return new_engine

    return create_engine(
        url,
        echo=False,  # Set to True for SQL debugging
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        **kwargs,
    )


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def is_postgres(bind) -> bool:
    return bind.dialect.name == "postgresql"


engine = build_engine()


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Get a database session without tenant context.

    Used for catalog bootstrap (seeding) and migrations-adjacent scripts.
    Request handling goes through tenancy.db.isolation.tenant_session.

    Usage:
        with get_session() as session:
            seed_system_roles(session)
            session.commit()

    Yields:
        SQLModel Session instance
    """
    with Session(engine) as session:
        try:
            yield session
        except Exception:
            session.rollback()
            raise


def get_session_dependency() -> Generator[Session, None, None]:
    """FastAPI dependency for database sessions."""
    with Session(engine) as session:
        yield session


def init_db() -> None:
    """Initialize database tables.

    Creates all tables defined in SQLModel models.
    Should only be used for development/testing.
    Use Alembic migrations for production.
    """
    # Import all models to ensure they're registered with SQLModel
    from tenancy.db.models import (  # noqa: F401
        User,
        Workspace,
        WorkspaceMembership,
        Role,
        Feature,
        Permission,
        RolePermission,
    )

    SQLModel.metadata.create_all(engine)


def drop_all_tables() -> None:
    """Drop all tables. USE WITH CAUTION - data loss will occur."""
    SQLModel.metadata.drop_all(engine)
