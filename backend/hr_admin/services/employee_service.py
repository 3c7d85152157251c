"""Employee records of one organization."""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from hr_admin.constants.modules import MasterDataResource
from hr_admin.models.base import as_utc
from hr_admin.models.employee import Employee
from hr_admin.models.master_data import MasterDataRecord
from hr_admin.models.organization import Organization
from hr_admin.platform.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

EMPLOYEE_STATUSES = ("active", "inactive", "exited")

_EDITABLE_FIELDS = ("first_name", "last_name", "email", "phone", "date_of_joining", "status")


class EmployeeService:
    def __init__(self, db: Session, organization_id: str):
        self.db = db
        self.organization_id = organization_id

    def _scoped(self):
        return self.db.query(Employee).filter(Employee.organization_id == self.organization_id)

    def serialize(self, employee: Employee, include_audit: bool = False) -> Dict[str, Any]:
        joined = as_utc(employee.date_of_joining)
        data = {
            "id": employee.id,
            "employee_code": employee.employee_code,
            "first_name": employee.first_name,
            "last_name": employee.last_name,
            "email": employee.email,
            "phone": employee.phone,
            "department_id": employee.department_id,
            "designation_id": employee.designation_id,
            "date_of_joining": joined.isoformat() if joined else None,
            "status": employee.status,
        }
        if include_audit:
            data.update(created_by=employee.created_by, updated_by=employee.updated_by)
        return data

    def list_employees(self, status: Optional[str] = None, department_id: Optional[str] = None) -> List[Employee]:
        query = self._scoped()
        if status:
            query = query.filter(Employee.status == status)
        if department_id:
            query = query.filter(Employee.department_id == department_id)
        return query.order_by(Employee.employee_code).all()

    def get_employee(self, employee_id: str) -> Employee:
        employee = self._scoped().filter(Employee.id == employee_id).first()
        if employee is None:
            raise NotFoundError("Employee not found", code="employee_not_found")
        return employee

    def _validate_lookup(self, record_id: Optional[str], resource: MasterDataResource, label: str) -> None:
        if not record_id:
            return
        exists = (
            self.db.query(MasterDataRecord.id)
            .filter(
                MasterDataRecord.id == record_id,
                MasterDataRecord.organization_id == self.organization_id,
                MasterDataRecord.resource == resource.value,
            )
            .first()
        )
        if exists is None:
            raise ValidationError(f"Invalid {label}", code=f"invalid_{label}")

    def _validate(self, data: Dict[str, Any]) -> None:
        self._validate_lookup(data.get("department_id"), MasterDataResource.DEPARTMENTS, "department")
        self._validate_lookup(data.get("designation_id"), MasterDataResource.DESIGNATIONS, "designation")
        if data.get("status") is not None and data["status"] not in EMPLOYEE_STATUSES:
            raise ValidationError(f"Invalid status {data['status']}", code="invalid_status")

    def create_employee(self, data: Dict[str, Any], user_id: Optional[str] = None) -> Employee:
        code = (data.get("employee_code") or "").strip()
        if not code or not (data.get("first_name") or "").strip():
            raise ValidationError("Employee code and first name are required", code="employee_fields_required")
        if self._scoped().filter(Employee.employee_code == code).first() is not None:
            raise ConflictError("Employee code already exists", code="employee_code_exists")
        self._validate(data)

        limit = (
            self.db.query(Organization.max_employees)
            .filter(Organization.id == self.organization_id)
            .scalar()
        )
        count = self._scoped().with_entities(func.count(Employee.id)).scalar()
        if limit is not None and count >= limit:
            raise ValidationError("Employee limit reached for this organization", code="employee_limit_reached")

        employee = Employee(
            organization_id=self.organization_id,
            employee_code=code,
            department_id=data.get("department_id"),
            designation_id=data.get("designation_id"),
            created_by=user_id,
            updated_by=user_id,
        )
        for field in _EDITABLE_FIELDS:
            if data.get(field) is not None:
                setattr(employee, field, data[field])
        self.db.add(employee)
        self.db.flush()
        logger.info("Employee created", extra={"org_id": self.organization_id, "employee_id": employee.id})
        return employee

    def update_employee(self, employee_id: str, data: Dict[str, Any], user_id: Optional[str] = None) -> Employee:
        employee = self.get_employee(employee_id)
        self._validate(data)
        if data.get("employee_code"):
            code = data["employee_code"].strip()
            clash = self._scoped().filter(Employee.employee_code == code, Employee.id != employee.id).first()
            if clash is not None:
                raise ConflictError("Employee code already exists", code="employee_code_exists")
            employee.employee_code = code
        for field in _EDITABLE_FIELDS + ("department_id", "designation_id"):
            if field in data and data[field] is not None:
                setattr(employee, field, data[field])
        employee.updated_by = user_id
        self.db.flush()
        return employee

    def delete_employee(self, employee_id: str) -> None:
        employee = self.get_employee(employee_id)
        self.db.delete(employee)
        self.db.flush()
        logger.info("Employee deleted", extra={"org_id": self.organization_id, "employee_id": employee_id})

    def export_rows(self) -> List[Dict[str, Any]]:
        """Flat rows for export, with department and designation names resolved."""
        names = {
            r.id: r.name
            for r in self.db.query(MasterDataRecord).filter(
                MasterDataRecord.organization_id == self.organization_id
            )
        }
        rows = []
        for employee in self.list_employees():
            row = self.serialize(employee)
            row["department"] = names.get(employee.department_id)
            row["designation"] = names.get(employee.designation_id)
            rows.append(row)
        return rows

    def bulk_update_status(self, employee_ids: List[str], status: str, user_id: Optional[str] = None) -> int:
        """
        Set one status on several employees.

        All ids must belong to the organization; otherwise nothing changes.
        """
        ids = list(dict.fromkeys(i for i in employee_ids or [] if i))
        if not ids:
            raise ValidationError("Employee IDs array is required", code="employee_ids_required")
        if status not in EMPLOYEE_STATUSES:
            raise ValidationError(f"Invalid status {status}", code="invalid_status")

        employees = self._scoped().filter(Employee.id.in_(ids)).all()
        if len(employees) != len(ids):
            raise ValidationError(
                "One or more employees not found or do not belong to this organization",
                code="employees_not_found",
            )
        for employee in employees:
            employee.status = status
            employee.updated_by = user_id
        self.db.flush()
        logger.info(
            "Employee status bulk updated",
            extra={"org_id": self.organization_id, "count": len(employees), "status": status},
        )
        return len(employees)
