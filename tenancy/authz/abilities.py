"""Ability resolution: what a user may do inside one workspace.

The resolver reads the caller's single membership in the workspace, follows
role -> role_permissions -> permissions -> features and returns the union
of grants as a PermissionSet. It is read-only and keeps no state between
calls, so a revoked membership or grant takes effect on the next call.

Matching rules:
- manage implies every action on the same resource
- the resource "all" matches every resource
- conditions are equality checks against the subject's fields;
  "$user_id" in a condition value stands for the resolved user
- the Owner role has full access, but only through an Owner membership
"""

from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping, Optional
from uuid import UUID

from sqlmodel import Session, select

from tenancy.db.models import (
    Feature,
    Permission,
    PermissionAction,
    RolePermission,
    SystemRole,
    WorkspaceMembership,
    PRIVILEGED_ROLE_IDS,
)

ALL_RESOURCES = "all"
USER_ID_PLACEHOLDER = "$user_id"


@dataclass(frozen=True)
class Grant:
    """One permission held through the caller's role."""

    feature: str
    action: str
    resource: str
    conditions: Optional[tuple[tuple[str, Any], ...]] = None

    @classmethod
    def from_permission(cls, feature: str, permission: Permission) -> "Grant":
        conditions = None
        if permission.conditions:
            conditions = tuple(
                (key, _freeze(value)) for key, value in sorted(permission.conditions.items())
            )
        return cls(
            feature=feature,
            action=permission.action,
            resource=permission.resource,
            conditions=conditions,
        )

    def covers(self, action: str, resource: str) -> bool:
        action_ok = self.action == PermissionAction.manage.value or self.action == action
        resource_ok = self.resource == ALL_RESOURCES or self.resource == resource
        return action_ok and resource_ok

    def matches(self, subject: Any, user_id: Optional[UUID]) -> bool:
        """Equality match of every condition against the subject."""
        if not self.conditions:
            return True
        if subject is None:
            return False
        for key, expected in self.conditions:
            if expected == USER_ID_PLACEHOLDER:
                expected = str(user_id) if user_id else None
            actual = _field(subject, key)
            if actual is None or str(actual) != str(expected):
                return False
        return True


def _freeze(value: Any) -> Any:
    if isinstance(value, dict):
        return tuple(sorted((k, _freeze(v)) for k, v in value.items()))
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    return value


def _field(subject: Any, key: str) -> Any:
    if isinstance(subject, Mapping):
        return subject.get(key)
    return getattr(subject, key, None)


@dataclass
class PermissionSet:
    """The resolved abilities of one user in one workspace."""

    user_id: Optional[UUID] = None
    workspace_id: Optional[UUID] = None
    role_id: Optional[UUID] = None
    full_access: bool = False
    grants: frozenset[Grant] = field(default_factory=frozenset)

    @classmethod
    def empty(cls, user_id: Optional[UUID] = None, workspace_id: Optional[UUID] = None):
        return cls(user_id=user_id, workspace_id=workspace_id)

    @property
    def is_member(self) -> bool:
        return self.role_id is not None

    @property
    def is_privileged(self) -> bool:
        """Owner or Admin: may manage memberships and custom roles."""
        return self.role_id in PRIVILEGED_ROLE_IDS

    def has_role(self, *roles: SystemRole) -> bool:
        return self.role_id is not None and any(self.role_id == r.id for r in roles)

    def can(self, action: str, resource: str, subject: Any = None) -> bool:
        """True if any grant allows action on resource (and subject, if conditional)."""
        if isinstance(action, PermissionAction):
            action = action.value
        if self.full_access:
            return True
        return any(
            grant.covers(action, resource) and grant.matches(subject, self.user_id)
            for grant in self.grants
        )

    def __iter__(self) -> Iterator[Grant]:
        return iter(sorted(self.grants, key=lambda g: (g.feature, g.resource, g.action)))

    def __len__(self) -> int:
        return len(self.grants)

    def __bool__(self) -> bool:
        return self.full_access or bool(self.grants)

    def to_dict(self) -> dict:
        return {
            "workspace_id": str(self.workspace_id) if self.workspace_id else None,
            "role_id": str(self.role_id) if self.role_id else None,
            "full_access": self.full_access,
            "grants": [
                {
                    "feature": grant.feature,
                    "action": grant.action,
                    "resource": grant.resource,
                    "conditions": dict(grant.conditions) if grant.conditions else None,
                }
                for grant in self
            ],
        }


class AbilityResolver:
    """Resolves PermissionSets from the database.

    Usage:
        abilities = AbilityResolver(session).resolve(user_id, workspace_id)
        if abilities.can("update", "board", board):
            ...
    """

    def __init__(self, session: Session):
        self.session = session

    def membership(self, user_id: UUID, workspace_id: UUID) -> Optional[WorkspaceMembership]:
        return self.session.get(WorkspaceMembership, (workspace_id, user_id))

    def resolve(self, user_id: UUID, workspace_id: UUID) -> PermissionSet:
        membership = self.membership(user_id, workspace_id)
        if membership is None:
            return PermissionSet.empty(user_id, workspace_id)

        statement = (
            select(Feature.name, Permission)
            .select_from(Permission)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .join(Feature, Feature.id == Permission.feature_id)
            .where(
                RolePermission.role_id == membership.role_id,
                Feature.is_enabled == True,  # noqa: E712
            )
        )
        grants = frozenset(
            Grant.from_permission(feature_name, permission)
            for feature_name, permission in self.session.exec(statement).all()
        )

        return PermissionSet(
            user_id=user_id,
            workspace_id=workspace_id,
            role_id=membership.role_id,
            full_access=membership.role_id == SystemRole.OWNER.id,
            grants=grants,
        )
