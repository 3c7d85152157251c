"""
Module catalog and per-organization enablement.

- OrgModule: catalog row for each OrgModuleCode (core flag, display data)
- PlatformModule: catalog row for each PlatformModuleCode
- OrganizationModule: enablement toggle of an org module for one organization

Core modules are always enabled regardless of OrganizationModule rows.
"""

from sqlalchemy import (
    Column,
    String,
    Boolean,
    Integer,
    DateTime,
    Text,
    ForeignKey,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from hr_admin.db_base import Base
from hr_admin.models.base import TimestampMixin, generate_uuid, utc_now


class OrgModule(Base, TimestampMixin):
    """Organization portal module definition."""

    __tablename__ = "org_modules"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    code = Column(
        String(50),
        nullable=False,
        unique=True,
        comment="OrgModuleCode value; the permission-matrix column key",
    )

    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)

    is_core = Column(
        Boolean,
        nullable=False,
        default=False,
        comment="Core modules are always enabled and part of every plan",
    )

    icon = Column(String(50), nullable=True)
    display_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<OrgModule(code={self.code}, core={self.is_core})>"


class PlatformModule(Base, TimestampMixin):
    """Super-admin panel module definition."""

    __tablename__ = "platform_modules"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    code = Column(String(50), nullable=False, unique=True, comment="PlatformModuleCode value")
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    icon = Column(String(50), nullable=True)
    display_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)


class OrganizationModule(Base, TimestampMixin):
    """Enablement of an org module for one organization."""

    __tablename__ = "organization_modules"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    organization_id = Column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
    )

    org_module_id = Column(
        String(36),
        ForeignKey("org_modules.id", ondelete="CASCADE"),
        nullable=False,
    )

    is_enabled = Column(Boolean, nullable=False, default=True)
    enabled_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    disabled_at = Column(DateTime(timezone=True), nullable=True)

    org_module = relationship("OrgModule", lazy="joined")

    __table_args__ = (
        UniqueConstraint("organization_id", "org_module_id", name="uq_organization_module"),
        Index("ix_organization_modules_org_enabled", "organization_id", "is_enabled"),
    )
