"""Seed system roles.

Revision ID: 002_system_roles
Revises: 001_initial
Create Date: 2026-10-18

Inserts Owner, Admin and Member with their fixed identifiers. Re-running
against a database that already has them is a no-op.
"""

from alembic import op
import sqlalchemy as sa

from tenancy.db.seed import system_role_rows

# revision identifiers, used by Alembic.
revision = "002_system_roles"
down_revision = "001_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    statement = sa.text(
        """
        INSERT INTO roles (id, name, description, is_system, workspace_id, created_at)
        VALUES (:id, :name, :description, true, NULL, now())
        ON CONFLICT (id) DO NOTHING
        """
    )
    for row in system_role_rows():
        op.execute(
            statement.bindparams(
                id=str(row["id"]), name=row["name"], description=row["description"]
            )
        )


def downgrade() -> None:
    ids = ", ".join(f"'{row['id']}'" for row in system_role_rows())
    op.execute(f"DELETE FROM roles WHERE id IN ({ids})")
