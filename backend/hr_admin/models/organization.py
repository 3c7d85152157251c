"""
Organization model: the tenant.

An organization is addressed by its slug in /api/v1/{org_slug}/... routes.
It is usable only while is_active is true, status is 'active' and the
subscription has not expired.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Column,
    String,
    Boolean,
    Integer,
    DateTime,
    Text,
    ForeignKey,
)
from sqlalchemy.orm import relationship

from hr_admin.constants.modules import OrganizationStatus
from hr_admin.db_base import Base
from hr_admin.models.base import TimestampMixin, generate_uuid, as_utc, utc_now


class Organization(Base, TimestampMixin):
    """Tenant organization."""

    __tablename__ = "organizations"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    name = Column(String(255), nullable=False)

    slug = Column(
        String(100),
        nullable=False,
        unique=True,
        index=True,
        comment="Lowercase URL segment identifying the tenant",
    )

    code = Column(String(50), nullable=False, comment="Uppercase code derived from slug")

    email = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    address = Column(Text, nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    postal_code = Column(String(20), nullable=True)
    country = Column(String(100), nullable=False, default="India")

    subscription_plan_id = Column(
        String(36),
        ForeignKey("subscription_plans.id"),
        nullable=False,
        index=True,
    )

    subscription_start_date = Column(DateTime(timezone=True), nullable=True)
    subscription_expiry_date = Column(
        DateTime(timezone=True),
        nullable=True,
        comment="NULL means no expiry",
    )

    max_users = Column(Integer, nullable=False, default=10)
    max_employees = Column(Integer, nullable=False, default=50)

    is_active = Column(Boolean, nullable=False, default=True)

    status = Column(
        String(20),
        nullable=False,
        default=OrganizationStatus.ACTIVE.value,
        comment="active | suspended | cancelled",
    )

    created_by = Column(String(36), nullable=True)
    updated_by = Column(String(36), nullable=True)

    subscription_plan = relationship("SubscriptionPlan", lazy="joined")

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, slug={self.slug}, status={self.status})>"

    @property
    def is_suspended(self) -> bool:
        return self.status == OrganizationStatus.SUSPENDED.value

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        expiry = as_utc(self.subscription_expiry_date)
        if expiry is None:
            return False
        return expiry < (now or utc_now())
