"""
Generic master-data records.

Lookup tables (departments, designations, countries, genders, ...) share
one shape, so they live in one table discriminated by `resource`.
Organization-scoped resources carry an organization_id; platform-wide
resources have organization_id = NULL.
"""

from sqlalchemy import (
    Column,
    String,
    Boolean,
    Text,
    ForeignKey,
    Index,
    UniqueConstraint,
)

from hr_admin.db_base import Base
from hr_admin.models.base import TimestampMixin, AuditedMixin, generate_uuid


class MasterDataRecord(Base, TimestampMixin, AuditedMixin):
    """One row of a master-data resource."""

    __tablename__ = "master_data_records"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    organization_id = Column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=True,
        comment="NULL for platform-wide resources",
    )

    resource = Column(String(50), nullable=False, comment="MasterDataResource value")

    name = Column(String(255), nullable=False)
    code = Column(String(50), nullable=True)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("organization_id", "resource", "code", name="uq_master_data_code"),
        Index("ix_master_data_org_resource", "organization_id", "resource"),
    )

    def __repr__(self) -> str:
        return f"<MasterDataRecord(resource={self.resource}, name={self.name})>"
