"""
Base mixins for database models.

Provides common functionality:
- TimestampMixin: created_at, updated_at timestamps
- OrganizationScopedMixin: organization_id for tenant isolation
- AuditedMixin: created_by / updated_by user references
- generate_uuid: UUID generation for primary keys
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, String, DateTime, ForeignKey, func
from sqlalchemy.orm import declared_attr


def generate_uuid() -> str:
    """Generate a UUID4 string for use as a primary key default."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a stored datetime to an aware UTC datetime.

    SQLite drops tzinfo on round-trip; naive values are treated as UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class TimestampMixin:
    """Mixin that adds created_at and updated_at timestamp columns."""

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        comment="Timestamp when record was created"
    )

    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
        comment="Timestamp when record was last updated"
    )


class OrganizationScopedMixin:
    """
    Mixin that adds organization_id for tenant isolation.

    SECURITY: organization_id is taken from the resolved tenant context,
    never from request bodies.
    """

    @declared_attr
    def organization_id(cls):
        return Column(
            String(36),
            ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
            comment="Owning organization. Set from tenant context only.",
        )


class AuditedMixin:
    """Mixin recording which user created and last updated a row."""

    created_by = Column(String(36), nullable=True, comment="User ID that created the row")
    updated_by = Column(String(36), nullable=True, comment="User ID that last updated the row")
