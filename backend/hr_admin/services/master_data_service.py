"""
Generic master-data CRUD.

One service serves every lookup resource. An instance is bound to a
scope: an organization (org-scoped resources only) or the platform
(organization_id None, platform-wide resources only). Resources outside
the scope are reported as not found.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from hr_admin.constants.modules import ORG_MASTER_DATA, PLATFORM_MASTER_DATA, MasterDataResource
from hr_admin.models.base import as_utc
from hr_admin.models.master_data import MasterDataRecord
from hr_admin.platform.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def parse_resource(value: str, organization_id: Optional[str]) -> MasterDataResource:
    """Validate a resource path segment against the scope's registry."""
    allowed = PLATFORM_MASTER_DATA if organization_id is None else ORG_MASTER_DATA
    try:
        resource = MasterDataResource(value)
    except ValueError:
        resource = None
    if resource is None or resource not in allowed:
        raise NotFoundError(f"Master data resource {value} not found", code="resource_not_found")
    return resource


class MasterDataService:
    def __init__(self, db: Session, resource: MasterDataResource, organization_id: Optional[str] = None):
        self.db = db
        self.resource = resource
        self.organization_id = organization_id

    def _scoped(self):
        query = self.db.query(MasterDataRecord).filter(MasterDataRecord.resource == self.resource.value)
        if self.organization_id is None:
            return query.filter(MasterDataRecord.organization_id.is_(None))
        return query.filter(MasterDataRecord.organization_id == self.organization_id)

    @staticmethod
    def serialize(record: MasterDataRecord, include_audit: bool = False) -> Dict[str, Any]:
        data = {
            "id": record.id,
            "resource": record.resource,
            "name": record.name,
            "code": record.code,
            "description": record.description,
            "is_active": bool(record.is_active),
        }
        # Audit columns are shown only to callers with approve rights
        if include_audit:
            created_at = as_utc(record.created_at)
            updated_at = as_utc(record.updated_at)
            data.update(
                created_by=record.created_by,
                updated_by=record.updated_by,
                created_at=created_at.isoformat() if created_at else None,
                updated_at=updated_at.isoformat() if updated_at else None,
            )
        return data

    def list_records(self, active_only: bool = False, search: Optional[str] = None) -> List[MasterDataRecord]:
        query = self._scoped()
        if active_only:
            query = query.filter(MasterDataRecord.is_active.is_(True))
        if search:
            query = query.filter(MasterDataRecord.name.ilike(f"%{search.strip()}%"))
        return query.order_by(MasterDataRecord.name).all()

    def get_record(self, record_id: str) -> MasterDataRecord:
        record = self._scoped().filter(MasterDataRecord.id == record_id).first()
        if record is None:
            raise NotFoundError("Record not found", code="record_not_found")
        return record

    def _ensure_code_available(self, code: Optional[str], exclude_id: Optional[str] = None) -> None:
        if not code:
            return
        query = self._scoped().filter(MasterDataRecord.code == code)
        if exclude_id:
            query = query.filter(MasterDataRecord.id != exclude_id)
        if query.first() is not None:
            raise ConflictError(f"A record with code {code} already exists", code="record_code_exists")

    def create_record(self, data: Dict[str, Any], user_id: Optional[str] = None) -> MasterDataRecord:
        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError("Name is required", code="name_required")
        code = (data.get("code") or "").strip() or None
        self._ensure_code_available(code)

        record = MasterDataRecord(
            organization_id=self.organization_id,
            resource=self.resource.value,
            name=name,
            code=code,
            description=data.get("description"),
            is_active=data.get("is_active", True) is not False,
            created_by=user_id,
            updated_by=user_id,
        )
        self.db.add(record)
        self.db.flush()
        logger.info(
            "Master data record created",
            extra={"resource": self.resource.value, "record_id": record.id, "org_id": self.organization_id},
        )
        return record

    def update_record(self, record_id: str, data: Dict[str, Any], user_id: Optional[str] = None) -> MasterDataRecord:
        record = self.get_record(record_id)
        if "name" in data and data["name"] is not None:
            if not data["name"].strip():
                raise ValidationError("Name is required", code="name_required")
            record.name = data["name"].strip()
        if "code" in data and data["code"] is not None:
            code = data["code"].strip() or None
            self._ensure_code_available(code, exclude_id=record.id)
            record.code = code
        if "description" in data and data["description"] is not None:
            record.description = data["description"]
        if "is_active" in data and data["is_active"] is not None:
            record.is_active = bool(data["is_active"])
        record.updated_by = user_id
        self.db.flush()
        return record

    def delete_record(self, record_id: str) -> None:
        record = self.get_record(record_id)
        self.db.delete(record)
        self.db.flush()
        logger.info(
            "Master data record deleted",
            extra={"resource": self.resource.value, "record_id": record_id, "org_id": self.organization_id},
        )
