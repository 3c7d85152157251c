"""Pydantic schemas for organization records: users, master data, employees, recruitment."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


# =============================================================================
# Users
# =============================================================================

class UserCreate(BaseModel):
    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=1, max_length=255)
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    role_id: Optional[str] = None
    is_active: bool = True


class UserUpdate(BaseModel):
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    role_id: Optional[str] = Field(None, description="null removes the role")
    is_active: Optional[bool] = None
    password: Optional[str] = Field(None, max_length=255)


# =============================================================================
# Master data
# =============================================================================

class MasterDataCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    code: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = None
    is_active: bool = True


class MasterDataUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    code: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = None
    is_active: Optional[bool] = None


# =============================================================================
# Employees
# =============================================================================

class EmployeeCreate(BaseModel):
    employee_code: str = Field(..., min_length=1, max_length=50)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)
    department_id: Optional[str] = None
    designation_id: Optional[str] = None
    date_of_joining: Optional[datetime] = None
    status: Optional[str] = Field(None, description="active | inactive | exited")


class EmployeeUpdate(BaseModel):
    employee_code: Optional[str] = Field(None, min_length=1, max_length=50)
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)
    department_id: Optional[str] = None
    designation_id: Optional[str] = None
    date_of_joining: Optional[datetime] = None
    status: Optional[str] = None


# =============================================================================
# Recruitment
# =============================================================================

class CandidateCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    email: str = Field(..., max_length=255)
    phone: Optional[str] = Field(None, max_length=20)
    source: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class CandidateUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    source: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None


class ApplicationCreate(BaseModel):
    candidate_id: str
    job_title: str = Field(..., min_length=1, max_length=255)
    status: Optional[str] = Field(None, description="Defaults to Applied")


class ApplicationUpdate(BaseModel):
    job_title: Optional[str] = Field(None, min_length=1, max_length=255)
    status: Optional[str] = None
    reason: Optional[str] = Field(None, max_length=255, description="Recorded in the status history")


class InterviewCreate(BaseModel):
    application_id: str
    round_name: str = Field(..., max_length=100)
    interview_date: datetime
    interview_mode: str = Field(..., description="In-person | Video | Phone")
    interviewer_id: Optional[str] = None
    location: Optional[str] = Field(None, max_length=255)
    meeting_link: Optional[str] = Field(None, max_length=500)


class InterviewUpdate(BaseModel):
    round_name: Optional[str] = Field(None, max_length=100)
    interview_date: Optional[datetime] = None
    interview_mode: Optional[str] = None
    interviewer_id: Optional[str] = None
    location: Optional[str] = Field(None, max_length=255)
    meeting_link: Optional[str] = Field(None, max_length=500)
    status: Optional[str] = Field(None, description="Scheduled | Completed | Cancelled | Rescheduled")


class InterviewFeedback(BaseModel):
    feedback: str
    rating: Optional[int] = Field(None, description="1-10")
    result: Optional[str] = Field(None, description="Pass | Fail | On Hold")


class CommentCreate(BaseModel):
    comment: str
    section_key: Optional[str] = Field(None, max_length=50)
    rating: Optional[int] = Field(None, description="1-5, top-level comments only")
    parent_comment_id: Optional[str] = None


class CommentUpdate(BaseModel):
    comment: Optional[str] = None
    rating: Optional[int] = None


# =============================================================================
# Employees (bulk)
# =============================================================================

class EmployeeBulkStatus(BaseModel):
    employee_ids: List[str]
    status: str
