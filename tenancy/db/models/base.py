"""Base models for SQLModel tables.

All tables use UUID primary keys for security (anti-ID guessing) and
scalability (distributed systems friendly).
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from pydantic import ConfigDict
from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


def utc_now() -> datetime:
    """Timezone-aware current time; every timestamp column stores UTC."""
    return datetime.now(timezone.utc)


class UUIDModel(SQLModel):
    """Base model with UUID primary key.

    All entity tables inherit from this to ensure consistent
    primary key handling across the system. Junction tables
    (memberships, role grants) use composite keys instead.
    """

    id: UUID = Field(
        default_factory=uuid4,
        primary_key=True,
        index=True,
        nullable=False,
    )


class TimestampMixin(SQLModel):
    """Mixin for created_at and updated_at timestamps.

    Use with UUIDModel:
        class Workspace(UUIDModel, TimestampMixin, table=True):
            name: str
    """

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_type=DateTime(timezone=True),
        nullable=False,
    )
    updated_at: Optional[datetime] = Field(
        default=None,
        sa_type=DateTime(timezone=True),
        sa_column_kwargs={"onupdate": utc_now},
    )


class CreatedAtMixin(SQLModel):
    """Mixin for catalog rows that are never "updated" in the audit sense."""

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_type=DateTime(timezone=True),
        nullable=False,
    )


class StrictShape(SQLModel):
    """Base for Create/Update payload shapes.

    Unknown fields are rejected rather than dropped, so an update shape
    that does not declare an immutable column refuses payloads carrying it.
    """

    model_config = ConfigDict(extra="forbid")
