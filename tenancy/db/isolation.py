"""Row-level security for workspace isolation.

The database re-checks every row a tenant transaction touches, independent
of the application-level authorization in the services. Policies are
declared here as RowPolicy objects, rendered to PostgreSQL DDL and
installed by the row-level security migration.

The only input the policies trust is the transaction-local setting
app.current_user_id. tenant_session() binds it, together with
SET LOCAL ROLE to the application role, at the start of every transaction.

Membership lookups inside policies go through SECURITY DEFINER helper
functions. They run as the table owner, which is not subject to row
security, so a policy on workspace_memberships can consult
workspace_memberships without evaluating itself recursively.

On engines other than PostgreSQL (the SQLite unit test database) this
layer is inert.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Generator, Optional, Sequence
from uuid import UUID

from sqlalchemy import event, text
from sqlalchemy.engine import Connection
from sqlmodel import Session

from tenancy.config import APP_DB_ROLE, CURRENT_USER_SETTING, RLS_ENABLED
from tenancy.db import engine as engine_module
from tenancy.db.models.role import PRIVILEGED_ROLE_IDS, SystemRole
from tenancy.logging import get_logger

logger = get_logger(__name__)

COMMANDS = ("SELECT", "INSERT", "UPDATE", "DELETE", "ALL")


def _uuid_array(ids) -> str:
    items = ", ".join(f"'{role_id}'::uuid" for role_id in sorted(ids, key=str))
    return f"ARRAY[{items}]"


OWNER_ROLE = f"'{SystemRole.OWNER.id}'::uuid"
PRIVILEGED_ROLES = _uuid_array(PRIVILEGED_ROLE_IDS)
OWNER_ONLY = _uuid_array([SystemRole.OWNER.id])


@dataclass(frozen=True)
class RowPolicy:
    """One CREATE POLICY statement.

    using filters the rows a command may see or touch; with_check
    validates the rows it writes. INSERT policies only take with_check.
    """

    table: str
    command: str
    using: Optional[str] = None
    with_check: Optional[str] = None
    name: Optional[str] = None

    def __post_init__(self):
        if self.command not in COMMANDS:
            raise ValueError(f"Unsupported policy command: {self.command}")
        if self.command == "INSERT" and self.using is not None:
            raise ValueError("INSERT policies only accept a WITH CHECK expression")
        if self.using is None and self.with_check is None:
            raise ValueError("A policy needs a USING or WITH CHECK expression")

    @property
    def policy_name(self) -> str:
        return self.name or f"{self.table}_{self.command.lower()}"

    def create_sql(self, role: str = APP_DB_ROLE) -> str:
        sql = f"CREATE POLICY {self.policy_name} ON {self.table} FOR {self.command} TO {role}"
        if self.using is not None:
            sql += f" USING ({self.using})"
        if self.with_check is not None:
            sql += f" WITH CHECK ({self.with_check})"
        return sql

    def drop_sql(self) -> str:
        return f"DROP POLICY IF EXISTS {self.policy_name} ON {self.table}"


# =============================================================================
# Helper functions
# =============================================================================

HELPER_FUNCTIONS: list[str] = [
    f"""
    CREATE OR REPLACE FUNCTION app_current_user_id() RETURNS uuid
    LANGUAGE sql STABLE AS $$
        SELECT NULLIF(current_setting('{CURRENT_USER_SETTING}', true), '')::uuid
    $$
    """,
    """
    CREATE OR REPLACE FUNCTION app_is_member(ws uuid) RETURNS boolean
    LANGUAGE sql STABLE SECURITY DEFINER SET search_path FROM CURRENT AS $$
        SELECT EXISTS (
            SELECT 1 FROM workspace_memberships m
            WHERE m.workspace_id = ws AND m.user_id = app_current_user_id()
        )
    $$
    """,
    """
    CREATE OR REPLACE FUNCTION app_has_role(ws uuid, role_ids uuid[]) RETURNS boolean
    LANGUAGE sql STABLE SECURITY DEFINER SET search_path FROM CURRENT AS $$
        SELECT EXISTS (
            SELECT 1 FROM workspace_memberships m
            WHERE m.workspace_id = ws
              AND m.user_id = app_current_user_id()
              AND m.role_id = ANY (role_ids)
        )
    $$
    """,
    """
    CREATE OR REPLACE FUNCTION app_is_workspace_owner(ws uuid, uid uuid) RETURNS boolean
    LANGUAGE sql STABLE SECURITY DEFINER SET search_path FROM CURRENT AS $$
        SELECT EXISTS (
            SELECT 1 FROM workspaces w WHERE w.id = ws AND w.owner_id = uid
        )
    $$
    """,
    """
    CREATE OR REPLACE FUNCTION app_role_in_scope(rid uuid, ws uuid) RETURNS boolean
    LANGUAGE sql STABLE SECURITY DEFINER SET search_path FROM CURRENT AS $$
        SELECT EXISTS (
            SELECT 1 FROM roles r
            WHERE r.id = rid AND (r.workspace_id IS NULL OR r.workspace_id = ws)
        )
    $$
    """,
    """
    CREATE OR REPLACE FUNCTION app_is_super_admin() RETURNS boolean
    LANGUAGE sql STABLE SECURITY DEFINER SET search_path FROM CURRENT AS $$
        SELECT COALESCE(
            (SELECT u.is_super_admin FROM users u WHERE u.id = app_current_user_id()),
            false
        )
    $$
    """,
]

HELPER_FUNCTION_SIGNATURES: list[str] = [
    "app_is_super_admin()",
    "app_role_in_scope(uuid, uuid)",
    "app_is_workspace_owner(uuid, uuid)",
    "app_has_role(uuid, uuid[])",
    "app_is_member(uuid)",
    "app_current_user_id()",
]


# =============================================================================
# Policies
# =============================================================================

_PRIVILEGED = f"app_has_role(workspace_id, {PRIVILEGED_ROLES})"
_SUPER_ADMIN = "app_is_super_admin()"
_ROLE_IN_SCOPE = "app_role_in_scope(role_id, workspace_id)"
_NOT_OWNER_ROW = "NOT app_is_workspace_owner(workspace_id, user_id)"

POLICIES: list[RowPolicy] = [
    # workspaces
    RowPolicy("workspaces", "SELECT", using="app_is_member(id)"),
    RowPolicy("workspaces", "INSERT", with_check="owner_id = app_current_user_id()"),
    RowPolicy("workspaces", "UPDATE", using=f"app_has_role(id, {OWNER_ONLY})"),
    RowPolicy("workspaces", "DELETE", using=f"app_has_role(id, {OWNER_ONLY})"),
    # workspace_memberships
    RowPolicy("workspace_memberships", "SELECT", using="app_is_member(workspace_id)"),
    RowPolicy(
        "workspace_memberships",
        "INSERT",
        with_check=(
            f"{_ROLE_IN_SCOPE} AND ("
            f"({_PRIVILEGED} AND role_id <> {OWNER_ROLE}) "
            "OR (user_id = app_current_user_id() "
            "AND invited_by = app_current_user_id() "
            f"AND role_id = {OWNER_ROLE} "
            "AND app_is_workspace_owner(workspace_id, user_id)))"
        ),
    ),
    # The designated owner's row is frozen until owner_id moves away from it
    RowPolicy(
        "workspace_memberships",
        "UPDATE",
        using=f"{_PRIVILEGED} AND {_NOT_OWNER_ROW}",
        with_check=(
            f"{_PRIVILEGED} AND {_ROLE_IN_SCOPE} AND (role_id <> {OWNER_ROLE} "
            "OR app_is_workspace_owner(workspace_id, app_current_user_id()))"
        ),
    ),
    RowPolicy(
        "workspace_memberships",
        "DELETE",
        using=(
            f"({_PRIVILEGED} OR user_id = app_current_user_id()) "
            f"AND {_NOT_OWNER_ROW}"
        ),
    ),
    # roles
    RowPolicy(
        "roles",
        "SELECT",
        using="workspace_id IS NULL OR app_is_member(workspace_id)",
    ),
    RowPolicy(
        "roles",
        "INSERT",
        with_check=f"NOT is_system AND workspace_id IS NOT NULL AND {_PRIVILEGED}",
    ),
    RowPolicy(
        "roles",
        "UPDATE",
        using=f"NOT is_system AND {_PRIVILEGED}",
        with_check=f"NOT is_system AND {_PRIVILEGED}",
    ),
    RowPolicy("roles", "DELETE", using=f"NOT is_system AND {_PRIVILEGED}"),
    # role_permissions
    RowPolicy(
        "role_permissions",
        "SELECT",
        using="EXISTS (SELECT 1 FROM roles r WHERE r.id = role_id)",
    ),
    RowPolicy(
        "role_permissions",
        "INSERT",
        with_check=(
            "EXISTS (SELECT 1 FROM roles r WHERE r.id = role_id AND ("
            f"(r.workspace_id IS NOT NULL AND app_has_role(r.workspace_id, {PRIVILEGED_ROLES})) "
            f"OR (r.workspace_id IS NULL AND {_SUPER_ADMIN})))"
        ),
    ),
    RowPolicy(
        "role_permissions",
        "DELETE",
        using=(
            "EXISTS (SELECT 1 FROM roles r WHERE r.id = role_id AND ("
            f"(r.workspace_id IS NOT NULL AND app_has_role(r.workspace_id, {PRIVILEGED_ROLES})) "
            f"OR (r.workspace_id IS NULL AND {_SUPER_ADMIN})))"
        ),
    ),
    # features / permissions: global catalog
    RowPolicy("features", "SELECT", using="true"),
    RowPolicy("features", "INSERT", with_check=_SUPER_ADMIN),
    RowPolicy("features", "UPDATE", using=_SUPER_ADMIN, with_check=_SUPER_ADMIN),
    RowPolicy("features", "DELETE", using=_SUPER_ADMIN),
    RowPolicy("permissions", "SELECT", using="true"),
    RowPolicy("permissions", "INSERT", with_check=_SUPER_ADMIN),
    RowPolicy("permissions", "UPDATE", using=_SUPER_ADMIN, with_check=_SUPER_ADMIN),
    RowPolicy("permissions", "DELETE", using=_SUPER_ADMIN),
]

PROTECTED_TABLES: list[str] = list(dict.fromkeys(policy.table for policy in POLICIES))

# Tables the application role can read without row security
READ_ONLY_TABLES: list[str] = ["users"]


def workspace_member_policies(table: str, column: str = "workspace_id") -> list[RowPolicy]:
    """Member-only policies for a feature table keyed by workspace.

    Feature modules call this from their own migrations:
        for statement in render_install_statements(workspace_member_policies("boards")):
            op.execute(statement)
    """
    predicate = f"app_is_member({column})"
    return [
        RowPolicy(table, "SELECT", using=predicate),
        RowPolicy(table, "INSERT", with_check=predicate),
        RowPolicy(table, "UPDATE", using=predicate, with_check=predicate),
        RowPolicy(table, "DELETE", using=predicate),
    ]


# =============================================================================
# DDL rendering
# =============================================================================


def render_role_statements(role: str = APP_DB_ROLE) -> list[str]:
    """Create the application role and let the connecting user switch to it."""
    return [
        f"""
        DO $$
        BEGIN
            IF NOT EXISTS (SELECT 1 FROM pg_roles WHERE rolname = '{role}') THEN
                CREATE ROLE {role} NOLOGIN;
            END IF;
        END
        $$
        """,
        f"GRANT {role} TO CURRENT_USER",
        f"""
        DO $$
        BEGIN
            EXECUTE format('GRANT USAGE ON SCHEMA %I TO {role}', current_schema());
        END
        $$
        """,
    ]


def render_grant_statements(
    tables: Sequence[str] = PROTECTED_TABLES, role: str = APP_DB_ROLE
) -> list[str]:
    statements = [
        f"GRANT SELECT, INSERT, UPDATE, DELETE ON {table} TO {role}" for table in tables
    ]
    statements += [f"GRANT SELECT ON {table} TO {role}" for table in READ_ONLY_TABLES]
    return statements


def render_install_statements(
    policies: Sequence[RowPolicy], role: str = APP_DB_ROLE
) -> list[str]:
    """ENABLE ROW LEVEL SECURITY plus CREATE POLICY for each policy."""
    tables = list(dict.fromkeys(policy.table for policy in policies))
    statements = [f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY" for table in tables]
    statements += [policy.create_sql(role) for policy in policies]
    return statements


def render_drop_statements(policies: Sequence[RowPolicy]) -> list[str]:
    tables = list(dict.fromkeys(policy.table for policy in policies))
    statements = [policy.drop_sql() for policy in policies]
    statements += [f"ALTER TABLE {table} DISABLE ROW LEVEL SECURITY" for table in tables]
    return statements


def install_policies(connection: Connection, role: str = APP_DB_ROLE) -> None:
    """Install the application role, grants, helpers and every policy."""
    statements = (
        render_role_statements(role)
        + render_grant_statements(role=role)
        + HELPER_FUNCTIONS
        + render_install_statements(POLICIES, role)
    )
    for statement in statements:
        connection.execute(text(statement))
    logger.info("row_security_installed", policies=len(POLICIES), role=role)


def reinstall_policies(
    connection: Connection,
    policies: Sequence[RowPolicy],
    role: str = APP_DB_ROLE,
) -> None:
    """Replace already-installed policies in place, refreshing the helpers first."""
    statements = list(HELPER_FUNCTIONS)
    for policy in policies:
        statements += [policy.drop_sql(), policy.create_sql(role)]
    for statement in statements:
        connection.execute(text(statement))
    logger.info("row_security_reinstalled", policies=len(policies), role=role)


def policies_for(table: str) -> list[RowPolicy]:
    return [policy for policy in POLICIES if policy.table == table]


def uninstall_policies(connection: Connection, role: str = APP_DB_ROLE) -> None:
    """Drop every policy and helper. The role itself is left in place."""
    statements = render_drop_statements(POLICIES)
    statements += [f"DROP FUNCTION IF EXISTS {sig}" for sig in HELPER_FUNCTION_SIGNATURES]
    tables = PROTECTED_TABLES + READ_ONLY_TABLES
    statements += [f"REVOKE ALL ON {table} FROM {role}" for table in tables]
    for statement in statements:
        connection.execute(text(statement))
    logger.info("row_security_removed", policies=len(POLICIES), role=role)


# =============================================================================
# Tenant context
# =============================================================================


def isolation_enforced(bind) -> bool:
    return RLS_ENABLED and engine_module.is_postgres(bind)


def apply_tenant_context(connection: Connection, user_id: UUID) -> None:
    """Switch the current transaction to the app role acting as user_id.

    Both settings are transaction-local and vanish at COMMIT/ROLLBACK.
    """
    role = connection.dialect.identifier_preparer.quote(APP_DB_ROLE)
    connection.execute(text(f"SET LOCAL ROLE {role}"))
    connection.execute(
        text("SELECT set_config(:setting, :user_id, true)"),
        {"setting": CURRENT_USER_SETTING, "user_id": str(user_id)},
    )


def acting_as(session: Session, user_id: UUID) -> None:
    """Bind user_id to every transaction the session begins from now on."""
    session.info["user_id"] = user_id
    if not isolation_enforced(session.get_bind()):
        return

    def _bind_tenant(session, transaction, connection):
        apply_tenant_context(connection, user_id)

    event.listen(session, "after_begin", _bind_tenant)


@contextmanager
def tenant_session(user_id: UUID) -> Generator[Session, None, None]:
    """Open a session whose transactions run as the given user.

    Usage:
        with tenant_session(user_id) as session:
            workspace = session.get(Workspace, workspace_id)
            session.commit()

    Objects stay loaded after commit so services can return them.
    """
    with Session(engine_module.engine, expire_on_commit=False) as session:
        acting_as(session, user_id)
        try:
            yield session
        except Exception:
            session.rollback()
            raise
