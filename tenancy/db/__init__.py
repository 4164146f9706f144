"""Database infrastructure for SQLModel + PostgreSQL.

This module provides session management, the row-level security layer
and the system role seed. The engine itself lives in tenancy.db.engine
and is looked up at call time, so tests can swap it.

Usage:
    from tenancy.db import tenant_session

    with tenant_session(user_id) as session:
        workspace = session.get(Workspace, workspace_id)
"""

from tenancy.db.engine import get_session, init_db
from tenancy.db.isolation import tenant_session

__all__ = [
    "get_session",
    "init_db",
    "tenant_session",
]
