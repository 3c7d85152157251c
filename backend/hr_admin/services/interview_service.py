"""
Interview scheduling for recruitment applications.

Scheduling an interview moves its application to Interview Scheduled;
recording a result moves it on (Fail -> Rejected, Pass -> Shortlisted or,
after the final round, Selected). Both cascade to the candidate through
RecruitmentService.
"""

import logging
import re
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from hr_admin.models.base import as_utc, utc_now
from hr_admin.models.recruitment import (
    Application,
    ApplicationStatus,
    InterviewMode,
    InterviewResult,
    InterviewSchedule,
    InterviewStatus,
    StatusEntity,
    TERMINAL_APPLICATION_STATUSES,
)
from hr_admin.models.user import User
from hr_admin.platform.errors import NotFoundError, ValidationError
from hr_admin.services.recruitment_service import MANUAL_REASON, RecruitmentService

logger = logging.getLogger(__name__)

# Clock skew allowed when checking that an interview is in the future
SCHEDULE_GRACE = timedelta(minutes=5)

# Passed rounds after which a pass counts as the final round
FINAL_ROUND_AFTER_PASSES = 3

_FINAL_ROUND_WORDS = frozenset({"final", "hr"})

UPCOMING_STATUSES = (InterviewStatus.SCHEDULED.value, InterviewStatus.RESCHEDULED.value)


def _parse(enum_cls, value: str, label: str, code: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {label}. Must be one of: {allowed}", code=code)


def is_final_round(round_name: str, passed_rounds: int) -> bool:
    """A round named Final or HR, or any round once enough rounds were passed."""
    words = set(re.findall(r"[a-z]+", (round_name or "").lower()))
    return bool(words & _FINAL_ROUND_WORDS) or passed_rounds >= FINAL_ROUND_AFTER_PASSES


def application_status_for_result(
    result: InterviewResult,
    round_name: str,
    passed_rounds: int,
) -> Optional[ApplicationStatus]:
    """
    Application status implied by an interview result.

    Args:
        passed_rounds: completed interviews of the application with a Pass,
            this one included

    Returns:
        None when the result leaves the application unchanged (On Hold)
    """
    if result is InterviewResult.FAIL:
        return ApplicationStatus.REJECTED
    if result is InterviewResult.PASS:
        if is_final_round(round_name, passed_rounds):
            return ApplicationStatus.SELECTED
        return ApplicationStatus.SHORTLISTED
    return None


class InterviewService:
    def __init__(self, db: Session, organization_id: str):
        self.db = db
        self.organization_id = organization_id
        self.recruitment = RecruitmentService(db, organization_id)

    @staticmethod
    def serialize(interview: InterviewSchedule, include_audit: bool = False) -> Dict[str, Any]:
        application = interview.application
        candidate = application.candidate if application is not None else None
        interviewer = interview.interviewer
        data = {
            "id": interview.id,
            "application_id": interview.application_id,
            "round_name": interview.round_name,
            "interview_date": as_utc(interview.interview_date).isoformat(),
            "interview_mode": interview.interview_mode,
            "location": interview.location,
            "meeting_link": interview.meeting_link,
            "status": interview.status,
            "feedback": interview.feedback,
            "rating": interview.rating,
            "result": interview.result,
            "application_status": application.status if application is not None else None,
            "job_title": application.job_title if application is not None else None,
            "candidate": (
                {
                    "id": candidate.id,
                    "first_name": candidate.first_name,
                    "last_name": candidate.last_name,
                    "email": candidate.email,
                    "status": candidate.status,
                }
                if candidate is not None
                else None
            ),
            "interviewer": (
                {
                    "id": interviewer.id,
                    "first_name": interviewer.first_name,
                    "last_name": interviewer.last_name,
                    "email": interviewer.email,
                }
                if interviewer is not None
                else None
            ),
        }
        if include_audit:
            data.update(created_by=interview.created_by, updated_by=interview.updated_by)
        return data

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _scoped(self):
        return self.db.query(InterviewSchedule).filter(InterviewSchedule.organization_id == self.organization_id)

    def list_interviews(
        self,
        status: Optional[str] = None,
        interviewer_id: Optional[str] = None,
        application_id: Optional[str] = None,
        candidate_id: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> List[InterviewSchedule]:
        query = self._scoped()
        if status:
            query = query.filter(InterviewSchedule.status == status)
        if interviewer_id:
            query = query.filter(InterviewSchedule.interviewer_id == interviewer_id)
        if application_id:
            query = query.filter(InterviewSchedule.application_id == application_id)
        if candidate_id:
            query = query.join(Application, Application.id == InterviewSchedule.application_id).filter(
                Application.candidate_id == candidate_id
            )
        if date_from:
            query = query.filter(InterviewSchedule.interview_date >= as_utc(date_from))
        if date_to:
            query = query.filter(InterviewSchedule.interview_date <= as_utc(date_to))
        return query.order_by(InterviewSchedule.interview_date.asc()).all()

    def list_for_interviewer(
        self,
        interviewer_id: str,
        status: Optional[str] = None,
        upcoming: bool = False,
    ) -> List[InterviewSchedule]:
        """Interviews assigned to one user; `upcoming` keeps future open interviews only."""
        query = self._scoped().filter(InterviewSchedule.interviewer_id == interviewer_id)
        if upcoming:
            query = query.filter(
                InterviewSchedule.interview_date >= utc_now(),
                InterviewSchedule.status.in_(UPCOMING_STATUSES),
            )
        elif status:
            query = query.filter(InterviewSchedule.status == status)
        return query.order_by(InterviewSchedule.interview_date.asc()).all()

    def get_interview(self, interview_id: str) -> InterviewSchedule:
        interview = self._scoped().filter(InterviewSchedule.id == interview_id).first()
        if interview is None:
            raise NotFoundError("Interview schedule not found", code="interview_not_found")
        return interview

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate_interviewer(self, interviewer_id: Optional[str]) -> None:
        if not interviewer_id:
            return
        exists = (
            self.db.query(User.id)
            .filter(User.id == interviewer_id, User.organization_id == self.organization_id)
            .first()
        )
        if exists is None:
            raise NotFoundError("Interviewer not found", code="interviewer_not_found")

    @staticmethod
    def _validate_date(value: datetime) -> datetime:
        when = as_utc(value)
        if when < utc_now() - SCHEDULE_GRACE:
            raise ValidationError("Interview date must be in the future", code="interview_date_past")
        return when

    @staticmethod
    def _validate_venue(mode: InterviewMode, location: Optional[str], meeting_link: Optional[str]) -> None:
        if mode is InterviewMode.IN_PERSON and not location:
            raise ValidationError("Location is required for in-person interviews", code="location_required")
        if mode in (InterviewMode.VIDEO, InterviewMode.PHONE) and not meeting_link:
            raise ValidationError(
                "Meeting link is required for video/phone interviews",
                code="meeting_link_required",
            )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def schedule_interview(self, data: Dict[str, Any], user_id: Optional[str] = None) -> InterviewSchedule:
        round_name = (data.get("round_name") or "").strip()
        if not round_name:
            raise ValidationError("Round name is required", code="round_name_required")
        if data.get("interview_date") is None:
            raise ValidationError("Interview date is required", code="interview_date_required")
        mode = _parse(InterviewMode, data.get("interview_mode") or "", "interview mode", "invalid_interview_mode")
        location = (data.get("location") or "").strip() or None
        meeting_link = (data.get("meeting_link") or "").strip() or None
        self._validate_venue(mode, location, meeting_link)
        when = self._validate_date(data["interview_date"])

        application = self.recruitment.get_application(data.get("application_id") or "")
        self._validate_interviewer(data.get("interviewer_id"))

        interview = InterviewSchedule(
            organization_id=self.organization_id,
            application_id=application.id,
            round_name=round_name,
            interview_date=when,
            interview_mode=mode.value,
            interviewer_id=data.get("interviewer_id") or None,
            location=location,
            meeting_link=meeting_link,
            status=InterviewStatus.SCHEDULED.value,
            created_by=user_id,
            updated_by=user_id,
        )
        self.db.add(interview)
        self.db.flush()
        logger.info(
            "Interview scheduled",
            extra={"org_id": self.organization_id, "interview_id": interview.id, "application_id": application.id},
        )

        if ApplicationStatus(application.status) not in TERMINAL_APPLICATION_STATUSES:
            self.recruitment.set_application_status(
                application,
                ApplicationStatus.INTERVIEW_SCHEDULED,
                user_id,
                reason="Interview scheduled",
            )
        return interview

    def update_interview(
        self,
        interview_id: str,
        data: Dict[str, Any],
        user_id: Optional[str] = None,
    ) -> InterviewSchedule:
        """Reschedule or edit an interview. Results are recorded through submit_feedback."""
        interview = self.get_interview(interview_id)

        status = None
        if data.get("status"):
            status = _parse(InterviewStatus, data["status"], "status", "invalid_interview_status")
        mode = None
        if data.get("interview_mode"):
            mode = _parse(InterviewMode, data["interview_mode"], "interview mode", "invalid_interview_mode")
        if "round_name" in data and not (data["round_name"] or "").strip():
            raise ValidationError("Round name cannot be empty", code="round_name_required")
        when = self._validate_date(data["interview_date"]) if data.get("interview_date") else None

        if mode is not None:
            location = data.get("location", interview.location)
            meeting_link = data.get("meeting_link", interview.meeting_link)
            self._validate_venue(mode, location, meeting_link)
        if "interviewer_id" in data:
            self._validate_interviewer(data["interviewer_id"])

        if "round_name" in data:
            interview.round_name = data["round_name"].strip()
        if when is not None:
            interview.interview_date = when
        if mode is not None:
            interview.interview_mode = mode.value
        if "interviewer_id" in data:
            interview.interviewer_id = data["interviewer_id"] or None
        if "location" in data:
            interview.location = (data["location"] or "").strip() or None
        if "meeting_link" in data:
            interview.meeting_link = (data["meeting_link"] or "").strip() or None
        if status is not None and status.value != interview.status:
            self.recruitment.log_status_change(
                StatusEntity.INTERVIEW,
                interview.id,
                interview.status,
                status.value,
                changed_by=user_id,
                reason=MANUAL_REASON,
            )
            interview.status = status.value
        interview.updated_by = user_id
        self.db.flush()
        return interview

    def submit_feedback(
        self,
        interview_id: str,
        data: Dict[str, Any],
        user_id: Optional[str] = None,
    ) -> InterviewSchedule:
        """
        Record feedback and complete the interview.

        A Pass or Fail result moves the application (and so the candidate);
        On Hold leaves both unchanged.
        """
        feedback = (data.get("feedback") or "").strip()
        if not feedback:
            raise ValidationError("Feedback is required", code="feedback_required")
        rating = data.get("rating")
        if rating is not None and not 1 <= rating <= 10:
            raise ValidationError("Rating must be between 1 and 10", code="invalid_rating")
        result = None
        if data.get("result"):
            result = _parse(InterviewResult, data["result"], "result", "invalid_result")

        interview = self.get_interview(interview_id)
        if interview.status != InterviewStatus.COMPLETED.value:
            self.recruitment.log_status_change(
                StatusEntity.INTERVIEW,
                interview.id,
                interview.status,
                InterviewStatus.COMPLETED.value,
                changed_by=user_id,
                reason="Feedback submitted",
            )
        interview.feedback = feedback
        interview.rating = rating
        interview.result = result.value if result else None
        interview.status = InterviewStatus.COMPLETED.value
        interview.updated_by = user_id
        self.db.flush()

        if result is not None:
            self._apply_result(interview, result, user_id)
        return interview

    def _apply_result(self, interview: InterviewSchedule, result: InterviewResult, user_id: Optional[str]) -> None:
        application = self.recruitment.get_application(interview.application_id)
        passed = (
            self._scoped()
            .filter(
                InterviewSchedule.application_id == application.id,
                InterviewSchedule.status == InterviewStatus.COMPLETED.value,
                InterviewSchedule.result == InterviewResult.PASS.value,
            )
            .count()
        )
        target = application_status_for_result(result, interview.round_name, passed)
        if target is None:
            return

        if result is InterviewResult.FAIL:
            reason = f"Failed {interview.round_name} interview"
        elif target is ApplicationStatus.SELECTED:
            reason = f"Passed all interview rounds including {interview.round_name}"
        else:
            reason = f"Passed {interview.round_name} interview, moving to next round"
        self.recruitment.set_application_status(application, target, user_id, reason=reason)

    def delete_interview(self, interview_id: str) -> None:
        interview = self.get_interview(interview_id)
        self.db.delete(interview)
        self.db.flush()
        logger.info("Interview cancelled", extra={"org_id": self.organization_id, "interview_id": interview_id})

