"""System role seed.

The three system roles are a fixed dataset with fixed identifiers. Seeding
is idempotent: existing rows are verified, missing rows are inserted, and a
row that has drifted (renamed, re-scoped) stops the seed instead of being
silently repaired.
"""

from sqlmodel import Session, select

from tenancy.db.models.role import Role, SystemRole
from tenancy.logging import get_logger

logger = get_logger(__name__)


class SeedError(RuntimeError):
    """Raised when stored system roles disagree with the seed dataset."""


def system_role_rows() -> list[dict]:
    """The seed dataset as plain rows (shared with the seed migration)."""
    return [
        {
            "id": role.id,
            "name": role.value,
            "description": role.description,
            "is_system": True,
            "workspace_id": None,
        }
        for role in SystemRole
    ]


def _check_role(role: Role, expected: SystemRole) -> None:
    if role.name != expected.value or not role.is_system or role.workspace_id is not None:
        raise SeedError(
            f"System role {expected.id} has drifted: "
            f"name={role.name!r} is_system={role.is_system} workspace_id={role.workspace_id}"
        )


def seed_system_roles(session: Session) -> list[Role]:
    """Insert any missing system role. Safe to run any number of times.

    Stages the rows; the caller commits.
    """
    roles = []
    inserted = 0
    for expected in SystemRole:
        role = session.get(Role, expected.id)
        if role is None:
            role = Role(**next(r for r in system_role_rows() if r["id"] == expected.id))
            session.add(role)
            inserted += 1
        else:
            _check_role(role, expected)
        roles.append(role)

    session.flush()
    if inserted:
        logger.info("system_roles_seeded", inserted=inserted)
    return roles


def verify_system_roles(session: Session) -> None:
    """Raise SeedError unless exactly the three system roles exist, untouched."""
    stored = session.exec(select(Role).where(Role.is_system == True)).all()  # noqa: E712
    by_id = {role.id: role for role in stored}

    expected_ids = {role.id for role in SystemRole}
    if set(by_id) != expected_ids:
        raise SeedError(
            f"Expected system roles {sorted(map(str, expected_ids))}, "
            f"found {sorted(map(str, by_id))}"
        )
    for expected in SystemRole:
        _check_role(by_id[expected.id], expected)
