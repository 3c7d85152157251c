"""
Subscription plan models.

A plan bundles a set of org modules. Organizations on the plan may
enable any of the plan's modules; core modules must always be part of
every plan.
"""

from sqlalchemy import (
    Column,
    String,
    Boolean,
    Integer,
    Numeric,
    Text,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from hr_admin.db_base import Base
from hr_admin.models.base import TimestampMixin, generate_uuid


class SubscriptionPlan(Base, TimestampMixin):
    """Commercial plan assigned to organizations."""

    __tablename__ = "subscription_plans"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    name = Column(String(100), nullable=False, unique=True, comment="Display name")

    code = Column(String(50), nullable=False, unique=True, comment="Machine identifier")

    description = Column(Text, nullable=True)

    price_monthly = Column(Numeric(10, 2), nullable=True)
    price_yearly = Column(Numeric(10, 2), nullable=True)
    currency = Column(String(3), nullable=False, default="INR")

    max_users = Column(Integer, nullable=True, comment="NULL means unlimited")
    max_employees = Column(Integer, nullable=True, comment="NULL means unlimited")

    is_active = Column(Boolean, nullable=False, default=True, comment="Soft-delete flag")
    display_order = Column(Integer, nullable=False, default=0)

    plan_modules = relationship(
        "PlanModule",
        back_populates="plan",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<SubscriptionPlan(id={self.id}, code={self.code})>"


class PlanModule(Base, TimestampMixin):
    """Membership of an org module in a subscription plan."""

    __tablename__ = "plan_modules"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    subscription_plan_id = Column(
        String(36),
        ForeignKey("subscription_plans.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    org_module_id = Column(
        String(36),
        ForeignKey("org_modules.id", ondelete="CASCADE"),
        nullable=False,
    )

    plan = relationship("SubscriptionPlan", back_populates="plan_modules")
    org_module = relationship("OrgModule", lazy="joined")

    __table_args__ = (
        UniqueConstraint("subscription_plan_id", "org_module_id", name="uq_plan_module"),
    )
