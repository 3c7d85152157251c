"""Employee records, scoped per organization."""

from sqlalchemy import (
    Column,
    String,
    DateTime,
    ForeignKey,
    UniqueConstraint,
)

from hr_admin.db_base import Base
from hr_admin.models.base import (
    TimestampMixin,
    OrganizationScopedMixin,
    AuditedMixin,
    generate_uuid,
)


class Employee(Base, TimestampMixin, OrganizationScopedMixin, AuditedMixin):
    __tablename__ = "employees"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    employee_code = Column(String(50), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)

    department_id = Column(
        String(36),
        ForeignKey("master_data_records.id", ondelete="SET NULL"),
        nullable=True,
    )
    designation_id = Column(
        String(36),
        ForeignKey("master_data_records.id", ondelete="SET NULL"),
        nullable=True,
    )

    date_of_joining = Column(DateTime(timezone=True), nullable=True)
    status = Column(String(20), nullable=False, default="active", comment="active | inactive | exited")

    __table_args__ = (
        UniqueConstraint("organization_id", "employee_code", name="uq_employee_code"),
    )

    def __repr__(self) -> str:
        return f"<Employee(code={self.employee_code}, org={self.organization_id})>"
