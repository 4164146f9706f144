"""Tests for payload validation against the strict Create/Update shapes."""

from uuid import uuid4

import pytest

from api.exceptions import ValidationError
from api.validation import scoped_payload, validate_payload
from tenancy.db.models import (
    FeatureUpdate,
    PermissionCreate,
    PermissionUpdate,
    RoleCreate,
    RoleUpdate,
    WorkspaceCreate,
    WorkspaceMembershipUpdate,
    WorkspaceUpdate,
)


def _fields(exc: ValidationError) -> set[str]:
    return {error["field"] for error in exc.details["errors"]}


class TestValidatePayload:
    """Tests for validate_payload()."""

    def test_valid_payload_returns_shape(self):
        """A valid mapping is parsed into the shape."""
        owner_id = uuid4()
        data = validate_payload(WorkspaceCreate, {"name": "Acme", "owner_id": owner_id})

        assert isinstance(data, WorkspaceCreate)
        assert data.name == "Acme"
        assert data.owner_id == owner_id

    def test_shape_instance_passes_through(self):
        """An already-validated shape is returned unchanged."""
        data = WorkspaceCreate(name="Acme", owner_id=uuid4())
        assert validate_payload(WorkspaceCreate, data) is data

    def test_every_violation_is_reported(self):
        """All field errors are listed, not just the first one."""
        with pytest.raises(ValidationError) as exc_info:
            validate_payload(WorkspaceCreate, {"name": "", "owner_id": "not-a-uuid"})

        assert exc_info.value.status_code == 400
        assert _fields(exc_info.value) == {"name", "owner_id"}

    def test_name_longer_than_limit_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_payload(WorkspaceCreate, {"name": "x" * 101, "owner_id": uuid4()})
        assert _fields(exc_info.value) == {"name"}

    def test_unknown_fields_rejected(self):
        """Strict shapes refuse fields they do not declare."""
        with pytest.raises(ValidationError) as exc_info:
            validate_payload(
                WorkspaceCreate, {"name": "Acme", "owner_id": uuid4(), "plan": "pro"}
            )
        assert _fields(exc_info.value) == {"plan"}

    def test_non_mapping_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_payload(WorkspaceUpdate, ["name", "Acme"])
        assert exc_info.value.details["errors"][0]["field"] == "__root__"

    def test_error_entries_have_field_message_type(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_payload(RoleCreate, {"workspace_id": uuid4()})

        error = exc_info.value.details["errors"][0]
        assert set(error) == {"field", "message", "type"}
        assert error["field"] == "name"


class TestImmutableFields:
    """Update shapes reject the columns that must never change."""

    @pytest.mark.parametrize(
        "shape,payload,field",
        [
            (WorkspaceUpdate, {"owner_id": str(uuid4())}, "owner_id"),
            (WorkspaceUpdate, {"id": str(uuid4())}, "id"),
            (RoleUpdate, {"is_system": True}, "is_system"),
            (RoleUpdate, {"workspace_id": str(uuid4())}, "workspace_id"),
            (FeatureUpdate, {"name": "renamed"}, "name"),
            (PermissionUpdate, {"action": "manage"}, "action"),
            (PermissionUpdate, {"resource": "all"}, "resource"),
            (WorkspaceMembershipUpdate, {"role_id": str(uuid4()), "user_id": str(uuid4())}, "user_id"),
        ],
    )
    def test_immutable_field_rejected(self, shape, payload, field):
        with pytest.raises(ValidationError) as exc_info:
            validate_payload(shape, payload)
        assert field in _fields(exc_info.value)

    def test_role_create_does_not_accept_is_system(self):
        """Custom roles can never be created as system roles."""
        with pytest.raises(ValidationError) as exc_info:
            validate_payload(
                RoleCreate, {"name": "Editor", "workspace_id": uuid4(), "is_system": True}
            )
        assert _fields(exc_info.value) == {"is_system"}

    def test_permission_action_must_be_known(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_payload(
                PermissionCreate,
                {"feature_id": uuid4(), "action": "publish", "resource": "board"},
            )
        assert _fields(exc_info.value) == {"action"}


class TestScopedPayload:
    """Path-derived fields are merged in, never taken from the body."""

    def test_scope_is_added(self):
        workspace_id = uuid4()
        assert scoped_payload({"name": "Editor"}, workspace_id=workspace_id) == {
            "name": "Editor",
            "workspace_id": workspace_id,
        }

    def test_body_may_not_carry_scope(self):
        with pytest.raises(ValidationError) as exc_info:
            scoped_payload({"name": "Editor", "workspace_id": str(uuid4())}, workspace_id=uuid4())
        assert _fields(exc_info.value) == {"workspace_id"}

    def test_non_mapping_left_for_validate_payload(self):
        with pytest.raises(ValidationError):
            validate_payload(RoleCreate, scoped_payload(["Editor"], workspace_id=uuid4()))
