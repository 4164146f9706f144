"""Tighten membership policies.

Revision ID: 004_membership_policy_scope
Revises: 003_row_level_security
Create Date: 2026-10-18

Membership writes must use a role that is a system role or belongs to the
membership's workspace (app_role_in_scope), and the designated owner's
membership row can no longer be updated by anyone.
"""

from alembic import op
from sqlalchemy import text

from tenancy.db.isolation import (
    OWNER_ROLE,
    PRIVILEGED_ROLES,
    RowPolicy,
    policies_for,
    reinstall_policies,
)

# revision identifiers, used by Alembic.
revision = "004_membership_policy_scope"
down_revision = "003_row_level_security"
branch_labels = None
depends_on = None

_PRIVILEGED = f"app_has_role(workspace_id, {PRIVILEGED_ROLES})"

PREVIOUS_POLICIES = [
    RowPolicy(
        "workspace_memberships",
        "INSERT",
        with_check=(
            f"({_PRIVILEGED} AND role_id <> {OWNER_ROLE}) "
            "OR (user_id = app_current_user_id() "
            "AND invited_by = app_current_user_id() "
            f"AND role_id = {OWNER_ROLE} "
            "AND app_is_workspace_owner(workspace_id, user_id))"
        ),
    ),
    RowPolicy(
        "workspace_memberships",
        "UPDATE",
        using=_PRIVILEGED,
        with_check=(
            f"{_PRIVILEGED} AND (role_id <> {OWNER_ROLE} "
            "OR app_is_workspace_owner(workspace_id, app_current_user_id()))"
        ),
    ),
]


def upgrade() -> None:
    policies = [
        policy
        for policy in policies_for("workspace_memberships")
        if policy.command in ("INSERT", "UPDATE")
    ]
    reinstall_policies(op.get_bind(), policies)


def downgrade() -> None:
    connection = op.get_bind()
    for policy in PREVIOUS_POLICIES:
        connection.execute(text(policy.drop_sql()))
        connection.execute(text(policy.create_sql()))
    connection.execute(text("DROP FUNCTION IF EXISTS app_role_in_scope(uuid, uuid)"))
