"""Global exception handlers for FastAPI.

Every failure leaves the API as {"error": {"code", "message", "details?"}}:

- TenancyException subclasses render with their own status and code
- SQLAlchemy errors that escape a service are mapped through
  translate_db_error, so a row-level security refusal is still a 403 and
  a uniqueness race is still a 409
- request validation failures become VALIDATION_ERROR with per-field entries
- anything else is logged with its traceback and returned as a bare 500
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.exceptions import TenancyException, ValidationError, sqlstate_of, translate_db_error
from api.validation import field_errors
from tenancy.logging import get_logger

logger = get_logger(__name__)

# HTTPExceptions only come from the auth dependency and the router itself
HTTP_ERROR_CODES = {
    401: "AUTHENTICATION_FAILED",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


def create_error_response(
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the error envelope shared by every handler."""
    error = {
        "code": code,
        "message": message,
    }
    if details:
        error["details"] = details
    return {"error": error}


def render_exception(exc: TenancyException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


def _log_tenancy_exception(request: Request, exc: TenancyException, **extra) -> None:
    fields = dict(
        path=request.url.path,
        error_code=exc.error_code,
        status=exc.status_code,
        **extra,
    )
    if exc.status_code >= 500:
        logger.error("request_failed", error=exc.message, **fields)
    elif exc.status_code == 403:
        logger.warning("request_denied", error=exc.message, **fields)
    else:
        logger.info("request_rejected", error=exc.message, **fields)


async def tenancy_exception_handler(
    request: Request, exc: TenancyException
) -> JSONResponse:
    """Render a TenancyException raised by a service or dependency."""
    _log_tenancy_exception(request, exc)
    return render_exception(exc)


async def database_exception_handler(
    request: Request, exc: SQLAlchemyError
) -> JSONResponse:
    """Render a database error that escaped the service layer.

    The driver's message never reaches the client; the SQLSTATE is logged
    so refusals by the isolation policies can be told apart from bugs.
    """
    translated = translate_db_error(exc)
    sqlstate = sqlstate_of(exc) if isinstance(exc, DBAPIError) else None
    _log_tenancy_exception(
        request,
        translated,
        db_error=type(exc).__name__,
        sqlstate=sqlstate,
        exc_info=exc if translated.status_code >= 500 else None,
    )
    return render_exception(translated)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report FastAPI request validation failures like service-level ones."""
    error = ValidationError(
        "Request validation failed",
        details={"errors": field_errors(exc)},
    )
    logger.info(
        "request_validation_failed",
        path=request.url.path,
        fields=[entry["field"] for entry in error.details["errors"]],
    )
    return render_exception(error)


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Render HTTPExceptions, keeping headers such as WWW-Authenticate."""
    code = HTTP_ERROR_CODES.get(exc.status_code, "ERROR")
    message = str(exc.detail) if exc.detail else "An error occurred"
    logger.info("http_error", path=request.url.path, status=exc.status_code, error=message)
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(code=code, message=message),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the traceback; the client only learns that something failed."""
    logger.error("unhandled_exception", path=request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content=create_error_response(
            code="INTERNAL_ERROR",
            message="An unexpected error occurred",
        ),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TenancyException, tenancy_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
