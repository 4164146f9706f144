"""Standard response models for API documentation.

Provides Pydantic models that appear in OpenAPI/Swagger docs
for consistent response schemas.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """Individual error detail for validation errors."""

    field: str = Field(description="Field that caused the error")
    message: str = Field(description="Error message")
    type: str = Field(description="Error type code")


class ErrorContent(BaseModel):
    """Error information container."""

    code: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error message")
    details: Optional[dict[str, Any]] = Field(
        default=None,
        description="Additional error context",
    )


class ErrorResponse(BaseModel):
    """Standard error response format.

    All API errors follow this structure for consistency.

    Example:
        {
            "error": {
                "code": "FORBIDDEN",
                "message": "Only workspace owners and admins can manage members",
                "details": {"workspace_id": "..."}
            }
        }
    """

    error: ErrorContent = Field(description="Error information")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "error": {
                        "code": "NOT_FOUND",
                        "message": "Workspace not found",
                        "details": {"workspace_id": "123"},
                    }
                },
                {
                    "error": {
                        "code": "VALIDATION_ERROR",
                        "message": "Validation failed",
                        "details": {
                            "errors": [
                                {
                                    "field": "name",
                                    "message": "String should have at least 1 character",
                                    "type": "string_too_short",
                                }
                            ]
                        },
                    }
                },
            ]
        }
    }


# Responses shared by every workspace-scoped route, for OpenAPI docs
ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Validation failed"},
    401: {"model": ErrorResponse, "description": "Authentication required"},
    403: {"model": ErrorResponse, "description": "Permission denied"},
    404: {"model": ErrorResponse, "description": "Resource not found"},
    409: {"model": ErrorResponse, "description": "Conflict with current state"},
}


class SuccessResponse(BaseModel):
    """Simple success response for operations without data.

    Use for DELETE or other operations that don't return content.
    """

    success: bool = Field(default=True, description="Operation succeeded")
    message: Optional[str] = Field(
        default=None,
        description="Optional success message",
    )
