"""Tests for structured logging context and audit events."""

import asyncio
from unittest.mock import MagicMock
from uuid import uuid4

import httpx
import pytest
from fastapi import FastAPI

from api.exceptions import AuthorizationError
from api.middleware import RequestContextMiddleware
from api.services import MembershipService, WorkspaceService
from api.services import access, membership_service, workspace_service
from tenancy.db.models import SystemRole
from tenancy.logging import bind_context, clear_context, get_context, get_logger
from tenancy.logging.structured import add_request_context, add_service_info


@pytest.fixture(autouse=True)
def clean_context():
    clear_context()
    yield
    clear_context()


class TestContext:
    def test_bind_and_clear(self):
        user_id = uuid4()
        workspace_id = uuid4()
        bind_context(request_id="req-1", user_id=user_id, workspace_id=workspace_id)

        assert get_context() == {
            "request_id": "req-1",
            "user_id": str(user_id),
            "workspace_id": str(workspace_id),
        }

        clear_context()
        assert get_context() == {}

    def test_none_values_are_skipped(self):
        bind_context(request_id="req-1", user_id=None)
        assert get_context() == {"request_id": "req-1"}

    def test_processor_adds_context(self):
        bind_context(request_id="req-2")
        event = add_request_context(None, "info", {"event": "member_added"})
        assert event == {"event": "member_added", "request_id": "req-2"}

    def test_service_info(self):
        event = add_service_info(None, "info", {"event": "x"})
        assert event["service"] == "workspace-tenancy"

    def test_get_logger(self):
        logger = get_logger("tenancy.test")
        assert hasattr(logger, "info")

    def test_explicit_values_win_over_context(self):
        bind_context(request_id="req-3")
        event = add_request_context(None, "info", {"event": "x", "request_id": "explicit"})
        assert event["request_id"] == "explicit"


class TestConcurrentContext:
    """Each request (asyncio task) keeps its own bound context."""

    def test_tasks_do_not_share_context(self):
        async def handle(request_id, delay):
            clear_context()
            bind_context(request_id=request_id)
            await asyncio.sleep(delay)
            seen = get_context().get("request_id")
            clear_context()
            return seen

        async def main():
            return await asyncio.gather(handle("req-A", 0.02), handle("req-B", 0))

        assert asyncio.run(main()) == ["req-A", "req-B"]

    def test_middleware_isolates_concurrent_requests(self):
        app = FastAPI()
        app.add_middleware(RequestContextMiddleware)

        @app.get("/ctx")
        async def read_context(delay: float = 0):
            await asyncio.sleep(delay)
            return get_context()

        async def main():
            transport = httpx.ASGITransport(app=app)
            async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
                return await asyncio.gather(
                    client.get("/ctx", params={"delay": 0.05}, headers={"X-Request-ID": "req-A"}),
                    client.get("/ctx", headers={"X-Request-ID": "req-B"}),
                )

        slow, fast = asyncio.run(main())
        assert slow.json() == {"request_id": "req-A"}
        assert fast.json() == {"request_id": "req-B"}
        assert get_context() == {}


class TestAuditEvents:
    """Mutations and denials emit structured events."""

    def test_workspace_created_event(self, owner, monkeypatch):
        logger = MagicMock()
        monkeypatch.setattr(workspace_service, "logger", logger)

        workspace = WorkspaceService().create_workspace("Acme", owner.id)

        logger.info.assert_called_once_with(
            "workspace_created",
            workspace_id=str(workspace.id),
            owner_id=str(owner.id),
        )

    def test_member_added_event(self, workspace, owner, member_user, monkeypatch):
        logger = MagicMock()
        monkeypatch.setattr(membership_service, "logger", logger)

        MembershipService().assign_role(
            workspace.id, member_user.id, SystemRole.MEMBER.id, owner.id
        )

        event, = logger.info.call_args.args
        assert event == "member_added"
        assert logger.info.call_args.kwargs["member_id"] == str(member_user.id)

    def test_denial_is_logged(self, workspace, outsider, monkeypatch):
        logger = MagicMock()
        monkeypatch.setattr(access, "logger", logger)

        with pytest.raises(AuthorizationError):
            WorkspaceService().get_workspace(workspace.id, outsider.id)

        logger.warning.assert_called_once()
        assert logger.warning.call_args.args == ("authorization_denied",)
        assert logger.warning.call_args.kwargs["user_id"] == str(outsider.id)
