"""Row-level security.

Revision ID: 003_row_level_security
Revises: 002_system_roles
Create Date: 2026-10-18

Creates the application database role, grants it table access, installs
the SECURITY DEFINER helper functions and enables the workspace isolation
policies defined in tenancy.db.isolation.
"""

from alembic import op

from tenancy.db.isolation import install_policies, uninstall_policies

# revision identifiers, used by Alembic.
revision = "003_row_level_security"
down_revision = "002_system_roles"
branch_labels = None
depends_on = None


def upgrade() -> None:
    install_policies(op.get_bind())


def downgrade() -> None:
    uninstall_policies(op.get_bind())
