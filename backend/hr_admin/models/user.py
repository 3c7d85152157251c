"""
User model.

A user belongs to at most one organization. Super admins have no
organization and act on the platform panel; they can enter an
organization only through impersonation (support mode).
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Column,
    String,
    Boolean,
    Integer,
    DateTime,
    ForeignKey,
    Index,
)
from sqlalchemy.orm import relationship

from hr_admin.db_base import Base
from hr_admin.models.base import TimestampMixin, generate_uuid, as_utc, utc_now


class User(Base, TimestampMixin):
    """Portal or platform user account."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    organization_id = Column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=True,
        comment="NULL for super admins",
    )

    role_id = Column(
        String(36),
        ForeignKey("roles.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="A user without a role has no permissions",
    )

    email = Column(String(255), nullable=False, unique=True, comment="Stored lowercase")
    password_hash = Column(String(255), nullable=False)

    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    phone = Column(String(20), nullable=True)

    is_super_admin = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)

    last_login_at = Column(DateTime(timezone=True), nullable=True)
    failed_login_attempts = Column(Integer, nullable=False, default=0)
    locked_until = Column(DateTime(timezone=True), nullable=True)

    created_by = Column(String(36), nullable=True)

    organization = relationship("Organization", lazy="joined")
    role = relationship("Role", lazy="joined")

    __table_args__ = (
        Index("ix_users_organization_email", "organization_id", "email"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    def is_locked(self, now: Optional[datetime] = None) -> bool:
        locked_until = as_utc(self.locked_until)
        return locked_until is not None and locked_until > (now or utc_now())
