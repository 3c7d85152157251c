"""
Recruitment pipeline models.

Status flows upward: an interview result moves its application, and a
candidate's status is derived from the statuses of their applications
(see services.recruitment_service). Every status transition is recorded
in StatusChangeLog.
"""

from enum import Enum

from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    String,
    Text,
    ForeignKey,
)
from sqlalchemy.orm import relationship

from hr_admin.db_base import Base
from hr_admin.models.base import (
    TimestampMixin,
    OrganizationScopedMixin,
    AuditedMixin,
    generate_uuid,
    utc_now,
)


class CandidateStatus(str, Enum):
    NEW = "New"
    IN_PROCESS = "In Process"
    SELECTED = "Selected"
    REJECTED = "Rejected"


class ApplicationStatus(str, Enum):
    APPLIED = "Applied"
    SHORTLISTED = "Shortlisted"
    INTERVIEW_SCHEDULED = "Interview Scheduled"
    SELECTED = "Selected"
    REJECTED = "Rejected"


ACTIVE_APPLICATION_STATUSES = frozenset({
    ApplicationStatus.APPLIED,
    ApplicationStatus.SHORTLISTED,
    ApplicationStatus.INTERVIEW_SCHEDULED,
})

TERMINAL_APPLICATION_STATUSES = frozenset({
    ApplicationStatus.SELECTED,
    ApplicationStatus.REJECTED,
})


class InterviewStatus(str, Enum):
    SCHEDULED = "Scheduled"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    RESCHEDULED = "Rescheduled"


class InterviewMode(str, Enum):
    IN_PERSON = "In-person"
    VIDEO = "Video"
    PHONE = "Phone"


class InterviewResult(str, Enum):
    PASS = "Pass"
    FAIL = "Fail"
    ON_HOLD = "On Hold"


class StatusEntity(str, Enum):
    CANDIDATE = "Candidate"
    APPLICATION = "Application"
    INTERVIEW = "Interview"


class Candidate(Base, TimestampMixin, OrganizationScopedMixin, AuditedMixin):
    __tablename__ = "candidates"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=True)
    source = Column(String(50), nullable=True, comment="Referral, job board, ...")
    notes = Column(Text, nullable=True)

    status = Column(
        String(20),
        nullable=False,
        default=CandidateStatus.NEW.value,
        comment="Derived from application statuses",
    )

    applications = relationship(
        "Application",
        back_populates="candidate",
        cascade="all, delete-orphan",
    )
    comments = relationship(
        "CandidateComment",
        back_populates="candidate",
        cascade="all, delete-orphan",
    )


class Application(Base, TimestampMixin, OrganizationScopedMixin, AuditedMixin):
    __tablename__ = "applications"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    candidate_id = Column(
        String(36),
        ForeignKey("candidates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    job_title = Column(String(255), nullable=False)
    status = Column(String(30), nullable=False, default=ApplicationStatus.APPLIED.value)

    candidate = relationship("Candidate", back_populates="applications")
    interviews = relationship(
        "InterviewSchedule",
        back_populates="application",
        cascade="all, delete-orphan",
    )


class InterviewSchedule(Base, TimestampMixin, OrganizationScopedMixin, AuditedMixin):
    """One interview round of an application."""

    __tablename__ = "interview_schedules"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    application_id = Column(
        String(36),
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    interviewer_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Organization user conducting the interview",
    )

    round_name = Column(String(100), nullable=False, comment="Technical, HR, Final, ...")
    interview_date = Column(DateTime(timezone=True), nullable=False)
    interview_mode = Column(String(20), nullable=False, comment="In-person | Video | Phone")
    location = Column(String(255), nullable=True, comment="Required for in-person interviews")
    meeting_link = Column(String(500), nullable=True, comment="Required for video and phone interviews")

    status = Column(String(20), nullable=False, default=InterviewStatus.SCHEDULED.value)
    feedback = Column(Text, nullable=True)
    rating = Column(Integer, nullable=True, comment="1-10")
    result = Column(String(20), nullable=True, comment="Pass | Fail | On Hold")

    application = relationship("Application", back_populates="interviews")
    interviewer = relationship("User")


class StatusChangeLog(Base, OrganizationScopedMixin):
    """Audit trail of candidate, application and interview status transitions."""

    __tablename__ = "status_change_logs"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    entity_type = Column(String(20), nullable=False, comment="Candidate | Application | Interview")
    entity_id = Column(String(36), nullable=False, index=True)
    old_status = Column(String(30), nullable=True)
    new_status = Column(String(30), nullable=False)
    changed_by = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="NULL for system transitions",
    )
    reason = Column(String(255), nullable=False, default="Status updated")

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    user = relationship("User")


class CandidateComment(Base, TimestampMixin, OrganizationScopedMixin):
    """
    Comment on one section of a candidate profile.

    Threads are single level: a reply points at a top-level comment and
    inherits its section.
    """

    __tablename__ = "candidate_comments"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    candidate_id = Column(
        String(36),
        ForeignKey("candidates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="Author",
    )
    parent_comment_id = Column(
        String(36),
        ForeignKey("candidate_comments.id", ondelete="CASCADE"),
        nullable=True,
    )

    section_key = Column(String(50), nullable=False, comment="Profile section, e.g. experience")
    comment = Column(Text, nullable=False)
    rating = Column(Integer, nullable=True, comment="1-5, top-level comments only")

    candidate = relationship("Candidate", back_populates="comments")
    author = relationship("User")
    parent = relationship("CandidateComment", remote_side=[id], back_populates="replies")
    replies = relationship(
        "CandidateComment",
        back_populates="parent",
        cascade="all",
        order_by="CandidateComment.created_at",
    )
