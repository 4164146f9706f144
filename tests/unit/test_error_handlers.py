"""Tests for API error handling, exception classes and DB error translation."""

import asyncio
import json
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from sqlalchemy.exc import IntegrityError as DBIntegrityError
from sqlalchemy.exc import OperationalError, ProgrammingError
from sqlalchemy.orm.exc import StaleDataError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api import error_handlers
from api.error_handlers import (
    create_error_response,
    http_exception_handler,
    register_error_handlers,
    tenancy_exception_handler,
    unhandled_exception_handler,
)
from api.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    IntegrityError,
    NotFoundError,
    TenancyException,
    TransactionError,
    ValidationError,
    translate_db_error,
)
from tests.http_utils import SyncClient


class FakeDriverError(Exception):
    """Stands in for a DBAPI exception carrying a SQLSTATE."""

    def __init__(self, message: str, pgcode: str = None):
        super().__init__(message)
        self.pgcode = pgcode


def _run(coro):
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class TestExceptionClasses:
    """Tests for custom exception classes."""

    def test_tenancy_exception_defaults(self):
        """TenancyException has correct default values."""
        exc = TenancyException()
        assert exc.message == "An unexpected error occurred"
        assert exc.error_code == "INTERNAL_ERROR"
        assert exc.details == {}
        assert exc.status_code == 500

    def test_tenancy_exception_to_dict(self):
        exc = TenancyException(
            message="Test error",
            error_code="TEST_CODE",
            details={"field": "value"},
        )
        assert exc.to_dict() == {
            "code": "TEST_CODE",
            "message": "Test error",
            "details": {"field": "value"},
        }

    def test_to_dict_omits_empty_details(self):
        assert "details" not in TenancyException(message="Test error").to_dict()

    @pytest.mark.parametrize(
        "cls,status,code",
        [
            (NotFoundError, 404, "NOT_FOUND"),
            (ValidationError, 400, "VALIDATION_ERROR"),
            (AuthenticationError, 401, "AUTHENTICATION_FAILED"),
            (AuthorizationError, 403, "FORBIDDEN"),
            (ConflictError, 409, "CONFLICT"),
            (IntegrityError, 409, "INTEGRITY_ERROR"),
            (TransactionError, 500, "TRANSACTION_FAILED"),
        ],
    )
    def test_status_and_code(self, cls, status, code):
        exc = cls()
        assert exc.status_code == status
        assert exc.error_code == code
        assert isinstance(exc, TenancyException)

    def test_exception_is_raiseable(self):
        with pytest.raises(NotFoundError) as exc_info:
            raise NotFoundError(message="Workspace not found")
        assert str(exc_info.value) == "Workspace not found"


class TestTranslateDbError:
    """Database errors map onto the tenancy exception hierarchy."""

    def test_postgres_unique_violation(self):
        exc = DBIntegrityError("INSERT", {}, FakeDriverError("duplicate key", pgcode="23505"))
        result = translate_db_error(exc, details={"name": "Editor"})

        assert isinstance(result, ConflictError)
        assert result.details == {"name": "Editor"}

    def test_sqlite_unique_violation(self):
        exc = DBIntegrityError("INSERT", {}, FakeDriverError("UNIQUE constraint failed: roles.name"))
        assert isinstance(translate_db_error(exc), ConflictError)

    def test_foreign_key_violation(self):
        exc = DBIntegrityError("INSERT", {}, FakeDriverError("fk", pgcode="23503"))
        assert isinstance(translate_db_error(exc), IntegrityError)

    def test_row_security_refusal(self):
        exc = ProgrammingError(
            "INSERT", {}, FakeDriverError("new row violates row-level security policy", pgcode="42501")
        )
        assert isinstance(translate_db_error(exc), AuthorizationError)

    def test_stale_data(self):
        assert isinstance(translate_db_error(StaleDataError("0 rows matched")), AuthorizationError)

    def test_other_errors(self):
        exc = OperationalError("SELECT", {}, FakeDriverError("connection reset"))
        result = translate_db_error(exc, "Could not save")

        assert isinstance(result, TransactionError)
        assert result.message == "Could not save"

    def test_tenancy_exception_passes_through(self):
        original = NotFoundError("Role not found")
        assert translate_db_error(original) is original


class TestErrorHandlerFunctions:
    """Tests for error handler functions."""

    def test_create_error_response_basic(self):
        assert create_error_response(code="TEST_CODE", message="Test message") == {
            "error": {"code": "TEST_CODE", "message": "Test message"}
        }

    def test_create_error_response_with_details(self):
        result = create_error_response(
            code="TEST_CODE", message="Test message", details={"key": "value"}
        )
        assert result["error"]["details"] == {"key": "value"}

    def test_tenancy_exception_handler(self):
        request = MagicMock()
        request.url.path = "/api/v1/w/123"
        exc = NotFoundError(message="Workspace not found", details={"workspace_id": "123"})

        response = _run(tenancy_exception_handler(request, exc))

        assert response.status_code == 404
        assert json.loads(response.body) == {
            "error": {
                "code": "NOT_FOUND",
                "message": "Workspace not found",
                "details": {"workspace_id": "123"},
            }
        }

    def test_http_exception_handler_keeps_headers(self):
        request = MagicMock()
        request.url.path = "/api/v1/workspaces"
        exc = StarletteHTTPException(
            status_code=401, detail="Missing credentials", headers={"WWW-Authenticate": "Bearer"}
        )

        response = _run(http_exception_handler(request, exc))

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert json.loads(response.body)["error"]["code"] == "AUTHENTICATION_FAILED"

    def test_http_exception_handler_unknown_status(self):
        request = MagicMock()
        request.url.path = "/api/test"
        exc = StarletteHTTPException(status_code=418, detail="I'm a teapot")

        response = _run(http_exception_handler(request, exc))

        body = json.loads(response.body)
        assert body["error"]["code"] == "ERROR"
        assert body["error"]["message"] == "I'm a teapot"

    def test_unhandled_exception_handler(self):
        """Internal details are never exposed."""
        request = MagicMock()
        request.url.path = "/api/test"

        response = _run(unhandled_exception_handler(request, RuntimeError("password=hunter2")))

        assert response.status_code == 500
        assert json.loads(response.body) == {
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
            }
        }


class TestErrorHandlerIntegration:
    """Error handlers registered on a FastAPI app."""

    @pytest.fixture
    def client(self):
        app = FastAPI()
        register_error_handlers(app)

        @app.get("/not-found")
        async def raise_not_found():
            raise NotFoundError(message="Workspace not found")

        @app.get("/validation-error")
        async def raise_validation():
            raise ValidationError(
                message="Invalid WorkspaceCreate",
                details={"errors": [{"field": "name", "message": "too short", "type": "string_too_short"}]},
            )

        @app.get("/forbidden")
        async def raise_forbidden():
            raise AuthorizationError(message="Only workspace owners and admins can assign roles")

        @app.get("/conflict")
        async def raise_conflict():
            raise ConflictError(message="User is already a member of this workspace")

        @app.get("/typed/{item_id}")
        async def typed(item_id: int):
            return {"item_id": item_id}

        return SyncClient(app)

    def test_not_found(self, client):
        response = client.get("/not-found")
        assert response.status_code == 404
        assert response.json() == {
            "error": {"code": "NOT_FOUND", "message": "Workspace not found"}
        }

    def test_validation_error_lists_fields(self, client):
        response = client.get("/validation-error")
        assert response.status_code == 400
        assert response.json()["error"]["details"]["errors"][0]["field"] == "name"

    def test_forbidden(self, client):
        response = client.get("/forbidden")
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

    def test_conflict(self, client):
        response = client.get("/conflict")
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CONFLICT"

    def test_request_validation_is_400(self, client):
        response = client.get("/typed/not-a-number")
        assert response.status_code == 400
        data = response.json()
        assert data["error"]["code"] == "VALIDATION_ERROR"
        assert data["error"]["details"]["errors"][0]["field"] == "path.item_id"

    def test_method_not_allowed(self, client):
        response = client.post("/not-found")
        assert response.status_code == 405
        assert response.json()["error"]["code"] == "METHOD_NOT_ALLOWED"


class TestDatabaseErrorsEscapingServices:
    """SQLAlchemy errors that reach the app keep their tenancy meaning."""

    @pytest.fixture
    def client(self):
        app = FastAPI()
        register_error_handlers(app)

        @app.get("/rls-refusal")
        async def raise_rls_refusal():
            raise ProgrammingError(
                "INSERT INTO workspace_memberships",
                {},
                FakeDriverError("new row violates row-level security policy", pgcode="42501"),
            )

        @app.get("/unique-race")
        async def raise_unique_race():
            raise DBIntegrityError(
                "INSERT INTO workspace_memberships",
                {},
                FakeDriverError("duplicate key value violates unique constraint", pgcode="23505"),
            )

        @app.get("/stale")
        async def raise_stale():
            raise StaleDataError("UPDATE statement on table 'workspaces' expected 1 row")

        @app.get("/db-down")
        async def raise_db_down():
            raise OperationalError("SELECT 1", {}, FakeDriverError("server closed the connection"))

        return SyncClient(app)

    def test_row_security_refusal_is_403(self, client):
        response = client.get("/rls-refusal")
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

    def test_unique_race_is_409(self, client):
        response = client.get("/unique-race")
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CONFLICT"

    def test_stale_write_is_403(self, client):
        assert client.get("/stale").status_code == 403

    def test_other_failures_hide_driver_message(self, client):
        response = client.get("/db-down")
        assert response.status_code == 500
        assert response.json() == {
            "error": {"code": "TRANSACTION_FAILED", "message": "Transaction failed"}
        }

    def test_handler_logs_sqlstate(self, monkeypatch):
        logger = MagicMock()
        monkeypatch.setattr(error_handlers, "logger", logger)
        request = MagicMock()
        request.url.path = "/api/v1/w/123/members"
        exc = ProgrammingError("INSERT", {}, FakeDriverError("rls", pgcode="42501"))

        response = _run(error_handlers.database_exception_handler(request, exc))

        assert response.status_code == 403
        logger.warning.assert_called_once()
        assert logger.warning.call_args.kwargs["sqlstate"] == "42501"
