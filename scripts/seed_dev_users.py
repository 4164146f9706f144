#!/usr/bin/env python3
"""Seed development users and a demo workspace.

Mirrors a few users into the local users table (normally the identity
provider does this), then creates a workspace through WorkspaceService so
the owner membership is bootstrapped the same way as in production.

Usage:
    python scripts/seed_dev_users.py
"""

import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from api.services import MembershipService, WorkspaceService
from tenancy.db.engine import get_session
from tenancy.db.models import SystemRole, UserCreate
from tenancy.db.seed import seed_system_roles
from tenancy.repositories import UserRepository


DEV_USERS = [
    {"email": "owner@example.com", "full_name": "Dev Owner", "is_super_admin": True},
    {"email": "member@example.com", "full_name": "Dev Member"},
]

DEMO_WORKSPACE = "Demo Workspace"


def seed_dev_users() -> None:
    """Create dev users (skipping existing ones) and the demo workspace."""
    users = []
    with get_session() as session:
        seed_system_roles(session)
        user_repo = UserRepository(session)
        for user_data in DEV_USERS:
            existing = user_repo.get_by_email(user_data["email"])
            if existing:
                print(f"User {user_data['email']} already exists, skipping")
                users.append(existing)
                continue
            user = user_repo.create(UserCreate(**user_data))
            print(f"Created user: {user.email} (id: {user.id})")
            users.append(user)
        session.commit()
        user_ids = [user.id for user in users]

    owner_id, member_id = user_ids
    workspace_service = WorkspaceService()
    existing = [
        w for w in workspace_service.list_user_workspaces(owner_id) if w.name == DEMO_WORKSPACE
    ]
    if existing:
        print(f"Workspace {DEMO_WORKSPACE!r} already exists, skipping")
        return

    workspace = workspace_service.create_workspace(DEMO_WORKSPACE, owner_id)
    MembershipService().assign_role(
        workspace.id, member_id, SystemRole.MEMBER.id, invited_by=owner_id
    )
    print(f"Created workspace: {workspace.name} (id: {workspace.id})")


if __name__ == "__main__":
    seed_dev_users()
