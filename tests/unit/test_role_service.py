"""Tests for RoleService (custom roles and their grants)."""

from uuid import uuid4

import pytest

from api.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from api.services import CatalogService, MembershipService, RoleService, WorkspaceService
from tenancy.db.models import SystemRole


@pytest.fixture
def board_permission(super_admin):
    service = CatalogService()
    feature = service.create_feature({"name": "boards", "display_name": "Boards"}, super_admin.id)
    return service.create_permission(
        feature.id, {"action": "manage", "resource": "board"}, super_admin.id
    )


class TestCreateRole:
    """Tests for create_role()."""

    def test_admin_creates_role(self, staffed_workspace, admin_user):
        role = RoleService().create_role(
            staffed_workspace.id,
            {"name": "Editor", "description": "Edits boards"},
            admin_user.id,
        )

        assert role.name == "Editor"
        assert role.workspace_id == staffed_workspace.id
        assert role.is_system is False

    def test_member_cannot_create(self, staffed_workspace, member_user):
        with pytest.raises(AuthorizationError):
            RoleService().create_role(staffed_workspace.id, {"name": "Editor"}, member_user.id)

    def test_duplicate_name_conflicts(self, workspace, owner):
        RoleService().create_role(workspace.id, {"name": "Editor"}, owner.id)
        with pytest.raises(ConflictError):
            RoleService().create_role(workspace.id, {"name": "Editor"}, owner.id)

    def test_same_name_in_other_workspace(self, workspace, owner, outsider):
        other = WorkspaceService().create_workspace("Other", outsider.id)

        first = RoleService().create_role(workspace.id, {"name": "Editor"}, owner.id)
        second = RoleService().create_role(other.id, {"name": "Editor"}, outsider.id)

        assert first.id != second.id

    def test_is_system_rejected(self, workspace, owner):
        with pytest.raises(ValidationError):
            RoleService().create_role(
                workspace.id, {"name": "Root", "is_system": True}, owner.id
            )

    def test_name_length(self, workspace, owner):
        with pytest.raises(ValidationError):
            RoleService().create_role(workspace.id, {"name": "x" * 51}, owner.id)

    def test_workspace_id_in_body_rejected(self, workspace, owner, outsider):
        other = WorkspaceService().create_workspace("Elsewhere", outsider.id)

        with pytest.raises(ValidationError) as exc_info:
            RoleService().create_role(
                workspace.id, {"name": "Editor", "workspace_id": str(other.id)}, owner.id
            )

        assert exc_info.value.details["errors"][0]["field"] == "workspace_id"
        assert "Editor" not in {r.name for r in RoleService().list_roles(other.id, outsider.id)}
        assert "Editor" not in {r.name for r in RoleService().list_roles(workspace.id, owner.id)}

    def test_matching_workspace_id_in_body_still_rejected(self, workspace, owner):
        with pytest.raises(ValidationError):
            RoleService().create_role(
                workspace.id, {"name": "Editor", "workspace_id": str(workspace.id)}, owner.id
            )


class TestListRoles:
    def test_system_and_custom_roles(self, staffed_workspace, owner, member_user):
        RoleService().create_role(staffed_workspace.id, {"name": "Editor"}, owner.id)

        roles = RoleService().list_roles(staffed_workspace.id, member_user.id)
        names = [role.name for role in roles]

        assert set(names) == {"owner", "admin", "member", "Editor"}

    def test_other_workspace_roles_hidden(self, workspace, owner, outsider):
        other = WorkspaceService().create_workspace("Other", outsider.id)
        RoleService().create_role(other.id, {"name": "Secret"}, outsider.id)

        names = [role.name for role in RoleService().list_roles(workspace.id, owner.id)]
        assert "Secret" not in names

    def test_outsider_cannot_list(self, workspace, outsider):
        with pytest.raises(AuthorizationError):
            RoleService().list_roles(workspace.id, outsider.id)


class TestModifyRole:
    """System roles are immutable; custom roles are editable by Owner/Admin."""

    def test_rename_custom_role(self, workspace, owner):
        role = RoleService().create_role(workspace.id, {"name": "Editor"}, owner.id)
        updated = RoleService().update_role(workspace.id, role.id, {"name": "Writer"}, owner.id)
        assert updated.name == "Writer"

    def test_rename_to_taken_name(self, workspace, owner):
        RoleService().create_role(workspace.id, {"name": "Editor"}, owner.id)
        role = RoleService().create_role(workspace.id, {"name": "Writer"}, owner.id)
        with pytest.raises(ConflictError):
            RoleService().update_role(workspace.id, role.id, {"name": "Editor"}, owner.id)

    @pytest.mark.parametrize("system_role", list(SystemRole))
    def test_system_role_cannot_be_updated(self, workspace, owner, system_role):
        with pytest.raises(AuthorizationError):
            RoleService().update_role(workspace.id, system_role.id, {"name": "boss"}, owner.id)

    @pytest.mark.parametrize("system_role", list(SystemRole))
    def test_system_role_cannot_be_deleted(self, workspace, owner, system_role):
        with pytest.raises(AuthorizationError):
            RoleService().delete_role(workspace.id, system_role.id, owner.id)

    def test_foreign_role_not_found(self, workspace, owner, outsider):
        other = WorkspaceService().create_workspace("Other", outsider.id)
        foreign = RoleService().create_role(other.id, {"name": "Editor"}, outsider.id)

        with pytest.raises(NotFoundError):
            RoleService().update_role(workspace.id, foreign.id, {"name": "Mine"}, owner.id)
        with pytest.raises(NotFoundError):
            RoleService().delete_role(workspace.id, foreign.id, owner.id)

    def test_delete_unused_role(self, workspace, owner):
        role = RoleService().create_role(workspace.id, {"name": "Editor"}, owner.id)
        RoleService().delete_role(workspace.id, role.id, owner.id)

        names = [r.name for r in RoleService().list_roles(workspace.id, owner.id)]
        assert "Editor" not in names

    def test_delete_role_in_use_conflicts(self, workspace, owner, member_user):
        role = RoleService().create_role(workspace.id, {"name": "Editor"}, owner.id)
        MembershipService().assign_role(workspace.id, member_user.id, role.id, owner.id)

        with pytest.raises(ConflictError) as exc_info:
            RoleService().delete_role(workspace.id, role.id, owner.id)
        assert exc_info.value.details["members"] == 1

    def test_member_cannot_delete(self, staffed_workspace, owner, member_user):
        role = RoleService().create_role(staffed_workspace.id, {"name": "Editor"}, owner.id)
        with pytest.raises(AuthorizationError):
            RoleService().delete_role(staffed_workspace.id, role.id, member_user.id)


class TestRolePermissions:
    """Granting and revoking catalog permissions on custom roles."""

    def test_grant_and_list(self, workspace, owner, board_permission):
        role = RoleService().create_role(workspace.id, {"name": "Editor"}, owner.id)
        RoleService().grant_permission(workspace.id, role.id, board_permission.id, owner.id)

        permissions = RoleService().list_role_permissions(workspace.id, role.id, owner.id)
        assert [p.id for p in permissions] == [board_permission.id]

    def test_grant_is_idempotent(self, workspace, owner, board_permission):
        role = RoleService().create_role(workspace.id, {"name": "Editor"}, owner.id)
        RoleService().grant_permission(workspace.id, role.id, board_permission.id, owner.id)
        RoleService().grant_permission(workspace.id, role.id, board_permission.id, owner.id)

        assert len(RoleService().list_role_permissions(workspace.id, role.id, owner.id)) == 1

    def test_revoke(self, workspace, owner, board_permission):
        role = RoleService().create_role(workspace.id, {"name": "Editor"}, owner.id)
        RoleService().grant_permission(workspace.id, role.id, board_permission.id, owner.id)
        RoleService().revoke_permission(workspace.id, role.id, board_permission.id, owner.id)

        assert RoleService().list_role_permissions(workspace.id, role.id, owner.id) == []

    def test_revoke_missing_grant(self, workspace, owner, board_permission):
        role = RoleService().create_role(workspace.id, {"name": "Editor"}, owner.id)
        with pytest.raises(NotFoundError):
            RoleService().revoke_permission(workspace.id, role.id, board_permission.id, owner.id)

    def test_unknown_permission(self, workspace, owner):
        role = RoleService().create_role(workspace.id, {"name": "Editor"}, owner.id)
        with pytest.raises(NotFoundError):
            RoleService().grant_permission(workspace.id, role.id, uuid4(), owner.id)

    def test_system_role_grants_not_managed_here(self, workspace, owner, board_permission):
        with pytest.raises(AuthorizationError):
            RoleService().grant_permission(
                workspace.id, SystemRole.MEMBER.id, board_permission.id, owner.id
            )

    def test_member_cannot_grant(self, staffed_workspace, owner, member_user, board_permission):
        role = RoleService().create_role(staffed_workspace.id, {"name": "Editor"}, owner.id)
        with pytest.raises(AuthorizationError):
            RoleService().grant_permission(
                staffed_workspace.id, role.id, board_permission.id, member_user.id
            )
