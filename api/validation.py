"""Payload validation against the strict Create/Update shapes.

Every field violation is reported at once, before any storage access:

    data = validate_payload(WorkspaceCreate, {"name": "", "owner_id": uid})
    # ValidationError(details={"errors": [{"field": "name", ...}]})
"""

from typing import Any, Mapping, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from api.exceptions import ValidationError

ShapeT = TypeVar("ShapeT", bound=BaseModel)


def field_errors(exc: PydanticValidationError) -> list[dict[str, str]]:
    """Flatten pydantic errors to {"field", "message", "type"} entries."""
    errors = []
    for error in exc.errors():
        errors.append(
            {
                "field": ".".join(str(x) for x in error.get("loc", [])) or "__root__",
                "message": error.get("msg", "Invalid value"),
                "type": error.get("type", "value_error"),
            }
        )
    return errors


def validate_payload(shape: type[ShapeT], payload: Any) -> ShapeT:
    """Parse payload into shape or raise ValidationError listing every violation.

    payload may be a mapping or an instance of the shape already.
    Unknown fields are rejected (the shapes forbid extras), so immutable
    columns cannot slip through an Update shape.
    """
    if isinstance(payload, shape):
        return payload
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(exclude_unset=True)
    if not isinstance(payload, Mapping):
        raise ValidationError(
            f"{shape.__name__} payload must be an object",
            details={
                "errors": [
                    {"field": "__root__", "message": "Expected an object", "type": "model_type"}
                ]
            },
        )
    try:
        return shape.model_validate(dict(payload))
    except PydanticValidationError as e:
        raise ValidationError(
            f"Invalid {shape.__name__}",
            details={"errors": field_errors(e)},
        ) from e


def scoped_payload(payload: Any, **scope: Any) -> Any:
    """Merge path-derived fields (workspace_id, feature_id) into a payload.

    A payload that already carries one of them is refused: the scope comes
    from the caller's route, never from the body.
    """
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(exclude_unset=True)
    if not isinstance(payload, Mapping):
        return payload
    clashes = [name for name in scope if name in payload]
    if clashes:
        raise ValidationError(
            "Payload may not set " + ", ".join(clashes),
            details={
                "errors": [
                    {
                        "field": name,
                        "message": "Extra inputs are not permitted",
                        "type": "extra_forbidden",
                    }
                    for name in clashes
                ]
            },
        )
    return {**payload, **scope}
