"""Standard exception classes for the tenancy API.

All custom exceptions inherit from TenancyException and include:
- message: Human-readable error message
- error_code: Machine-readable error code (e.g., "NOT_FOUND")
- details: Optional dictionary with additional context

Services raise these directly; database errors are mapped onto them by
translate_db_error().
"""

from typing import Any, Optional

from sqlalchemy.exc import DBAPIError
from sqlalchemy.exc import IntegrityError as DBIntegrityError
from sqlalchemy.orm.exc import StaleDataError

# PostgreSQL SQLSTATE codes
UNIQUE_VIOLATION = "23505"
INSUFFICIENT_PRIVILEGE = "42501"


class TenancyException(Exception):
    """Base exception for all tenancy errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code for client handling
        details: Optional dictionary with additional error context
        status_code: HTTP status code (set by subclasses)
    """

    status_code: int = 500
    default_error_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        result = {
            "code": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class NotFoundError(TenancyException):
    """Resource not found (HTTP 404).

    Use when the requested resource does not exist.
    """

    status_code = 404
    default_error_code = "NOT_FOUND"

    def __init__(
        self,
        message: str = "Resource not found",
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, error_code, details)


class ValidationError(TenancyException):
    """Request validation failed (HTTP 400).

    details["errors"] lists every violated field as
    {"field", "message", "type"}.
    """

    status_code = 400
    default_error_code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str = "Validation failed",
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, error_code, details)


class AuthenticationError(TenancyException):
    """Authentication failed (HTTP 401).

    Use when credentials are missing, invalid, or expired.
    """

    status_code = 401
    default_error_code = "AUTHENTICATION_FAILED"

    def __init__(
        self,
        message: str = "Authentication required",
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, error_code, details)


class AuthorizationError(TenancyException):
    """Authorization failed (HTTP 403).

    Use when the user is authenticated but lacks permission, including
    writes the database refused under row-level security.
    """

    status_code = 403
    default_error_code = "FORBIDDEN"

    def __init__(
        self,
        message: str = "Permission denied",
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, error_code, details)


class ConflictError(TenancyException):
    """Resource conflict (HTTP 409).

    Use when the request conflicts with current state
    (e.g., an existing membership, a duplicate role name).
    """

    status_code = 409
    default_error_code = "CONFLICT"

    def __init__(
        self,
        message: str = "Resource conflict",
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, error_code, details)


class IntegrityError(TenancyException):
    """A database constraint other than uniqueness was violated (HTTP 409)."""

    status_code = 409
    default_error_code = "INTEGRITY_ERROR"

    def __init__(
        self,
        message: str = "Data integrity violation",
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, error_code, details)


class TransactionError(TenancyException):
    """A multi-step write failed and was rolled back (HTTP 500)."""

    status_code = 500
    default_error_code = "TRANSACTION_FAILED"

    def __init__(
        self,
        message: str = "Transaction failed",
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, error_code, details)


def sqlstate_of(exc: DBAPIError) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def is_unique_violation(exc: DBIntegrityError) -> bool:
    if sqlstate_of(exc) == UNIQUE_VIOLATION:
        return True
    # SQLite reports uniqueness in the message only
    text = str(getattr(exc, "orig", exc))
    return "UNIQUE constraint failed" in text


def translate_db_error(
    exc: Exception,
    message: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
) -> TenancyException:
    """Map a database error onto the tenancy exception hierarchy.

    - unique violation -> ConflictError
    - any other constraint violation -> IntegrityError
    - row-level security refusal, or a write that matched no visible row
      (StaleDataError) -> AuthorizationError
    - anything else -> TransactionError

    Usage:
        except SQLAlchemyError as e:
            raise translate_db_error(e) from e
    """
    if isinstance(exc, TenancyException):
        return exc
    if isinstance(exc, DBIntegrityError):
        if is_unique_violation(exc):
            return ConflictError(message or "Resource already exists", details=details)
        return IntegrityError(message or "Data integrity violation", details=details)
    if isinstance(exc, StaleDataError):
        return AuthorizationError(message or "Permission denied", details=details)
    if isinstance(exc, DBAPIError) and sqlstate_of(exc) == INSUFFICIENT_PRIVILEGE:
        return AuthorizationError(message or "Permission denied", details=details)
    return TransactionError(message or "Transaction failed", details=details)
