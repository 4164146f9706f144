"""Tests for the row-level security declarations and their rendering.

The policies themselves are exercised against PostgreSQL in
tests/integration/test_row_level_security.py; these tests check the
generated DDL and the tenant session plumbing on SQLite.
"""

from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from sqlmodel import select

from tenancy.db import isolation
from tenancy.db.isolation import (
    HELPER_FUNCTION_SIGNATURES,
    HELPER_FUNCTIONS,
    POLICIES,
    PROTECTED_TABLES,
    RowPolicy,
    policies_for,
    reinstall_policies,
    render_drop_statements,
    render_grant_statements,
    render_install_statements,
    tenant_session,
    workspace_member_policies,
)
from tenancy.db.models import Workspace


class TestRowPolicy:
    def test_create_sql(self):
        policy = RowPolicy("boards", "UPDATE", using="app_is_member(workspace_id)",
                           with_check="app_is_member(workspace_id)")

        assert policy.policy_name == "boards_update"
        assert policy.create_sql("tenancy_app") == (
            "CREATE POLICY boards_update ON boards FOR UPDATE TO tenancy_app "
            "USING (app_is_member(workspace_id)) WITH CHECK (app_is_member(workspace_id))"
        )

    def test_insert_takes_with_check_only(self):
        with pytest.raises(ValueError):
            RowPolicy("boards", "INSERT", using="true")

    def test_needs_an_expression(self):
        with pytest.raises(ValueError):
            RowPolicy("boards", "SELECT")

    def test_unknown_command(self):
        with pytest.raises(ValueError):
            RowPolicy("boards", "TRUNCATE", using="true")

    def test_custom_name_and_drop(self):
        policy = RowPolicy("boards", "SELECT", using="true", name="boards_public")
        assert policy.drop_sql() == "DROP POLICY IF EXISTS boards_public ON boards"


class TestDeclaredPolicies:
    """Every protected table has a policy for every command it allows."""

    def test_protected_tables(self):
        assert set(PROTECTED_TABLES) == {
            "workspaces",
            "workspace_memberships",
            "roles",
            "role_permissions",
            "features",
            "permissions",
        }

    def test_policy_names_unique(self):
        names = [policy.policy_name for policy in POLICIES]
        assert len(names) == len(set(names))

    def test_membership_tables_require_membership_to_read(self):
        select_policies = {
            policy.table: policy.using for policy in POLICIES if policy.command == "SELECT"
        }
        assert select_policies["workspaces"] == "app_is_member(id)"
        assert select_policies["workspace_memberships"] == "app_is_member(workspace_id)"

    def test_owner_membership_delete_excluded(self):
        delete_policy = next(
            p for p in POLICIES if p.table == "workspace_memberships" and p.command == "DELETE"
        )
        assert "NOT app_is_workspace_owner(workspace_id, user_id)" in delete_policy.using

    def test_owner_membership_update_excluded(self):
        update_policy = next(
            p for p in POLICIES if p.table == "workspace_memberships" and p.command == "UPDATE"
        )
        assert "NOT app_is_workspace_owner(workspace_id, user_id)" in update_policy.using

    def test_membership_writes_check_role_scope(self):
        for policy in POLICIES:
            if policy.table == "workspace_memberships" and policy.command in ("INSERT", "UPDATE"):
                assert "app_role_in_scope(role_id, workspace_id)" in policy.with_check

    def test_every_helper_can_be_dropped(self):
        for statement in HELPER_FUNCTIONS:
            name = statement.split("FUNCTION ", 1)[1].split("(", 1)[0]
            assert any(sig.startswith(f"{name}(") for sig in HELPER_FUNCTION_SIGNATURES)

    def test_catalog_writes_need_super_admin(self):
        for policy in POLICIES:
            if policy.table in ("features", "permissions") and policy.command != "SELECT":
                assert "app_is_super_admin()" in (policy.with_check or policy.using)

    def test_install_enables_rls_once_per_table(self):
        statements = render_install_statements(POLICIES, "tenancy_app")
        enables = [s for s in statements if s.endswith("ENABLE ROW LEVEL SECURITY")]

        assert len(enables) == len(PROTECTED_TABLES)
        assert len(statements) == len(PROTECTED_TABLES) + len(POLICIES)

    def test_drop_mirrors_install(self):
        statements = render_drop_statements(POLICIES)
        assert statements[-1].endswith("DISABLE ROW LEVEL SECURITY")
        assert sum(s.startswith("DROP POLICY") for s in statements) == len(POLICIES)

    def test_users_are_read_only_for_app_role(self):
        statements = render_grant_statements(["workspaces"], "tenancy_app")
        assert "GRANT SELECT ON users TO tenancy_app" in statements
        assert not any("INSERT" in s and "users" in s for s in statements)


class TestWorkspaceMemberPolicies:
    def test_feature_table_policies(self):
        policies = workspace_member_policies("boards")

        assert [p.command for p in policies] == ["SELECT", "INSERT", "UPDATE", "DELETE"]
        assert all(p.table == "boards" for p in policies)
        assert policies[1].with_check == "app_is_member(workspace_id)"

    def test_custom_column(self):
        policies = workspace_member_policies("cards", column="board_workspace_id")
        assert policies[0].using == "app_is_member(board_workspace_id)"


class TestTenantSession:
    """On SQLite the isolation layer is inert but the session still works."""

    def test_not_enforced_on_sqlite(self, test_engine):
        assert not isolation.isolation_enforced(test_engine)

    def test_session_records_acting_user(self, test_engine, workspace):
        user_id = uuid4()
        with tenant_session(user_id) as session:
            assert session.info["user_id"] == user_id
            assert session.get_bind() is test_engine
            assert session.exec(select(Workspace)).all()

    def test_rolls_back_on_error(self, test_engine, owner):
        with pytest.raises(RuntimeError):
            with tenant_session(owner.id) as session:
                session.add(Workspace(name="Doomed", owner_id=owner.id))
                session.flush()
                raise RuntimeError("boom")

        with tenant_session(owner.id) as session:
            assert session.exec(select(Workspace)).all() == []


class TestReinstallPolicies:
    def test_replaces_each_policy_after_refreshing_helpers(self):
        connection = MagicMock()
        policies = policies_for("workspace_memberships")

        reinstall_policies(connection, policies, "tenancy_app")

        executed = [str(call.args[0]) for call in connection.execute.call_args_list]
        assert len(executed) == len(HELPER_FUNCTIONS) + 2 * len(policies)
        assert executed[len(HELPER_FUNCTIONS)] == policies[0].drop_sql()
        assert executed[len(HELPER_FUNCTIONS) + 1] == policies[0].create_sql("tenancy_app")

    def test_policies_for_table(self):
        assert [p.command for p in policies_for("workspaces")] == [
            "SELECT",
            "INSERT",
            "UPDATE",
            "DELETE",
        ]
