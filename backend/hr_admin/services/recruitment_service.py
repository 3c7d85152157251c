"""
Recruitment pipeline service: candidates, applications and the status
trail that ties them together.

A candidate's status is never set directly; it is re-derived from the
statuses of their applications whenever an application is created,
changed or removed. Application statuses move either by hand or through
interview outcomes (services.interview_service). Every transition is
written to StatusChangeLog with who made it and why.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from hr_admin.models.recruitment import (
    ACTIVE_APPLICATION_STATUSES,
    Application,
    ApplicationStatus,
    Candidate,
    CandidateStatus,
    StatusChangeLog,
    StatusEntity,
)
from hr_admin.models.base import as_utc
from hr_admin.platform.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

_CANDIDATE_FIELDS = ("first_name", "last_name", "email", "phone", "source", "notes")

AUTO_CANDIDATE_REASON = "Auto-updated based on application statuses"
MANUAL_REASON = "Manually updated by user"


def derive_candidate_status(application_statuses: Iterable[str]) -> CandidateStatus:
    """
    Candidate status from application statuses.

    - any Selected -> Selected
    - every application Rejected -> Rejected
    - any Applied / Shortlisted / Interview Scheduled -> In Process
    - no applications -> New
    """
    statuses = [ApplicationStatus(s) for s in application_statuses]
    if not statuses:
        return CandidateStatus.NEW
    if ApplicationStatus.SELECTED in statuses:
        return CandidateStatus.SELECTED
    if all(s is ApplicationStatus.REJECTED for s in statuses):
        return CandidateStatus.REJECTED
    if any(s in ACTIVE_APPLICATION_STATUSES for s in statuses):
        return CandidateStatus.IN_PROCESS
    return CandidateStatus.NEW


def _parse_status(value: str) -> ApplicationStatus:
    try:
        return ApplicationStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in ApplicationStatus)
        raise ValidationError(f"Invalid application status. Allowed: {allowed}", code="invalid_status")


def _parse_entity(value: str) -> StatusEntity:
    try:
        return StatusEntity(value)
    except ValueError:
        raise NotFoundError(f"Unknown entity type {value}", code="unknown_entity_type")


class RecruitmentService:
    def __init__(self, db: Session, organization_id: str):
        self.db = db
        self.organization_id = organization_id

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    @staticmethod
    def serialize_application(application: Application) -> Dict[str, Any]:
        return {
            "id": application.id,
            "candidate_id": application.candidate_id,
            "job_title": application.job_title,
            "status": application.status,
        }

    def serialize_candidate(self, candidate: Candidate, include_audit: bool = False) -> Dict[str, Any]:
        data = {
            "id": candidate.id,
            "first_name": candidate.first_name,
            "last_name": candidate.last_name,
            "email": candidate.email,
            "phone": candidate.phone,
            "source": candidate.source,
            "notes": candidate.notes,
            "status": candidate.status,
            "applications": [self.serialize_application(a) for a in candidate.applications],
        }
        if include_audit:
            data.update(created_by=candidate.created_by, updated_by=candidate.updated_by)
        return data

    @staticmethod
    def serialize_status_change(entry: StatusChangeLog) -> Dict[str, Any]:
        user = entry.user
        return {
            "id": entry.id,
            "entity_type": entry.entity_type,
            "entity_id": entry.entity_id,
            "old_status": entry.old_status,
            "new_status": entry.new_status,
            "reason": entry.reason,
            "changed_at": as_utc(entry.created_at).isoformat(),
            "changed_by": (
                {
                    "id": user.id,
                    "first_name": user.first_name,
                    "last_name": user.last_name,
                    "email": user.email,
                }
                if user is not None
                else None
            ),
        }

    # ------------------------------------------------------------------
    # Status trail
    # ------------------------------------------------------------------

    def log_status_change(
        self,
        entity_type: StatusEntity,
        entity_id: str,
        old_status: Optional[str],
        new_status: str,
        changed_by: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> StatusChangeLog:
        entry = StatusChangeLog(
            organization_id=self.organization_id,
            entity_type=StatusEntity(entity_type).value,
            entity_id=entity_id,
            old_status=old_status,
            new_status=new_status,
            changed_by=changed_by,
            reason=reason or "Status updated",
        )
        self.db.add(entry)
        logger.info(
            "Status changed",
            extra={
                "org_id": self.organization_id,
                "entity_type": entry.entity_type,
                "entity_id": entity_id,
                "from": old_status,
                "to": new_status,
            },
        )
        return entry

    def status_history(self, entity_type: str, entity_id: str) -> List[StatusChangeLog]:
        """Transitions of one entity, newest first."""
        entity = _parse_entity(entity_type)
        return (
            self.db.query(StatusChangeLog)
            .filter(
                StatusChangeLog.organization_id == self.organization_id,
                StatusChangeLog.entity_type == entity.value,
                StatusChangeLog.entity_id == entity_id,
            )
            .order_by(StatusChangeLog.created_at.desc())
            .all()
        )

    # ------------------------------------------------------------------
    # Candidates
    # ------------------------------------------------------------------

    def _candidates(self):
        return self.db.query(Candidate).filter(Candidate.organization_id == self.organization_id)

    def list_candidates(self, status: Optional[str] = None) -> List[Candidate]:
        query = self._candidates()
        if status:
            query = query.filter(Candidate.status == status)
        return query.order_by(Candidate.created_at.desc()).all()

    def get_candidate(self, candidate_id: str) -> Candidate:
        candidate = self._candidates().filter(Candidate.id == candidate_id).first()
        if candidate is None:
            raise NotFoundError("Candidate not found", code="candidate_not_found")
        return candidate

    def create_candidate(self, data: Dict[str, Any], user_id: Optional[str] = None) -> Candidate:
        email = (data.get("email") or "").strip().lower()
        if not (data.get("first_name") or "").strip() or not email:
            raise ValidationError("First name and email are required", code="candidate_fields_required")
        if self._candidates().filter(Candidate.email == email).first() is not None:
            raise ConflictError("A candidate with this email already exists", code="candidate_email_exists")

        candidate = Candidate(
            organization_id=self.organization_id,
            status=CandidateStatus.NEW.value,
            created_by=user_id,
            updated_by=user_id,
        )
        for field in _CANDIDATE_FIELDS:
            if data.get(field) is not None:
                setattr(candidate, field, data[field])
        candidate.email = email
        self.db.add(candidate)
        self.db.flush()
        return candidate

    def update_candidate(self, candidate_id: str, data: Dict[str, Any], user_id: Optional[str] = None) -> Candidate:
        candidate = self.get_candidate(candidate_id)
        for field in _CANDIDATE_FIELDS:
            if field in data and data[field] is not None:
                setattr(candidate, field, data[field])
        candidate.updated_by = user_id
        self.db.flush()
        return candidate

    def delete_candidate(self, candidate_id: str) -> None:
        candidate = self.get_candidate(candidate_id)
        self.db.delete(candidate)
        self.db.flush()
        logger.info("Candidate deleted", extra={"org_id": self.organization_id, "candidate_id": candidate_id})

    # ------------------------------------------------------------------
    # Applications
    # ------------------------------------------------------------------

    def sync_candidate_status(self, candidate: Candidate, user_id: Optional[str] = None) -> None:
        """Re-derive the candidate's status from their applications."""
        self.db.flush()
        self.db.expire(candidate, ["applications"])
        derived = derive_candidate_status(a.status for a in candidate.applications)
        if candidate.status != derived.value:
            self.log_status_change(
                StatusEntity.CANDIDATE,
                candidate.id,
                candidate.status,
                derived.value,
                changed_by=user_id,
                reason=AUTO_CANDIDATE_REASON,
            )
            candidate.status = derived.value
            candidate.updated_by = user_id
        self.db.flush()

    def set_application_status(
        self,
        application: Application,
        status: ApplicationStatus,
        user_id: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> bool:
        """
        Move an application to `status`, log it and cascade to the candidate.

        Returns:
            False when the application already had that status
        """
        if application.status == status.value:
            return False
        self.log_status_change(
            StatusEntity.APPLICATION,
            application.id,
            application.status,
            status.value,
            changed_by=user_id,
            reason=reason,
        )
        application.status = status.value
        application.updated_by = user_id
        self.sync_candidate_status(self.get_candidate(application.candidate_id), user_id)
        return True

    def _applications(self):
        return self.db.query(Application).filter(Application.organization_id == self.organization_id)

    def list_applications(self, candidate_id: Optional[str] = None) -> List[Application]:
        query = self._applications()
        if candidate_id:
            query = query.filter(Application.candidate_id == candidate_id)
        return query.order_by(Application.created_at.desc()).all()

    def get_application(self, application_id: str) -> Application:
        application = self._applications().filter(Application.id == application_id).first()
        if application is None:
            raise NotFoundError("Application not found", code="application_not_found")
        return application

    def create_application(self, data: Dict[str, Any], user_id: Optional[str] = None) -> Application:
        candidate = self.get_candidate(data.get("candidate_id") or "")
        job_title = (data.get("job_title") or "").strip()
        if not job_title:
            raise ValidationError("Job title is required", code="job_title_required")
        status = _parse_status(data.get("status") or ApplicationStatus.APPLIED.value)

        application = Application(
            organization_id=self.organization_id,
            candidate_id=candidate.id,
            job_title=job_title,
            status=status.value,
            created_by=user_id,
            updated_by=user_id,
        )
        self.db.add(application)
        self.sync_candidate_status(candidate, user_id)
        return application

    def update_application(self, application_id: str, data: Dict[str, Any], user_id: Optional[str] = None) -> Application:
        application = self.get_application(application_id)
        if data.get("job_title"):
            application.job_title = data["job_title"].strip()
        application.updated_by = user_id
        if data.get("status"):
            status = _parse_status(data["status"])
            self.set_application_status(application, status, user_id, reason=data.get("reason") or MANUAL_REASON)
        self.db.flush()
        return application

    def delete_application(self, application_id: str, user_id: Optional[str] = None) -> None:
        application = self.get_application(application_id)
        candidate = self.get_candidate(application.candidate_id)
        self.db.delete(application)
        self.sync_candidate_status(candidate, user_id)
