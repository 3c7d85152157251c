"""
Database models for the HR Admin API.

Organization-scoped models use OrganizationScopedMixin; platform models
(plans, module catalogs, platform roles) have no organization.
"""

from hr_admin.models.base import TimestampMixin, OrganizationScopedMixin, AuditedMixin
from hr_admin.models.plan import SubscriptionPlan, PlanModule
from hr_admin.models.module import OrgModule, PlatformModule, OrganizationModule
from hr_admin.models.organization import Organization
from hr_admin.models.role import Role, RolePermission, seed_org_admin_role
from hr_admin.models.user import User
from hr_admin.models.master_data import MasterDataRecord
from hr_admin.models.employee import Employee
from hr_admin.models.recruitment import (
    Candidate,
    Application,
    CandidateStatus,
    ApplicationStatus,
    InterviewSchedule,
    StatusChangeLog,
    CandidateComment,
)

__all__ = [
    "TimestampMixin",
    "OrganizationScopedMixin",
    "AuditedMixin",
    "SubscriptionPlan",
    "PlanModule",
    "OrgModule",
    "PlatformModule",
    "OrganizationModule",
    "Organization",
    "Role",
    "RolePermission",
    "seed_org_admin_role",
    "User",
    "MasterDataRecord",
    "Employee",
    "Candidate",
    "Application",
    "CandidateStatus",
    "ApplicationStatus",
    "InterviewSchedule",
    "StatusChangeLog",
    "CandidateComment",
]
