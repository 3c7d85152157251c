"""
Organization lifecycle service.

Creating an organization:
1. Validates the slug (lowercase letters, digits, hyphens; not reserved)
2. Enables every module of the chosen plan
3. Seeds the system org_admin role with full access to those modules
4. Creates the first admin user holding that role

Changing an organization's plan re-syncs its module toggles and extends
the org_admin role to newly included modules. Status and activity
changes invalidate every cached profile of the organization.
"""

import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from hr_admin.auth.passwords import hash_password, validate_new_password
from hr_admin.constants.modules import (
    ALL_ACTIONS,
    ORG_ADMIN_ROLE_CODE,
    RESERVED_ORG_SLUGS,
    OrganizationStatus,
)
from hr_admin.models.base import as_utc, utc_now
from hr_admin.models.employee import Employee
from hr_admin.models.master_data import MasterDataRecord
from hr_admin.models.module import OrganizationModule
from hr_admin.models.organization import Organization
from hr_admin.models.plan import SubscriptionPlan
from hr_admin.models.recruitment import Application, Candidate
from hr_admin.models.role import Role, RolePermission, seed_org_admin_role
from hr_admin.models.user import User
from hr_admin.platform.errors import ConflictError, NotFoundError, ValidationError
from hr_admin.services.module_service import ModuleService
from hr_admin.services.permission_cache import invalidate_on_commit
from hr_admin.services.plan_service import PlanService

logger = logging.getLogger(__name__)

SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")

# Fields an organization admin may change from the portal
PROFILE_FIELDS = ("name", "email", "phone", "address", "city", "state", "postal_code", "country")

# Fields a super admin may change
ADMIN_FIELDS = PROFILE_FIELDS + (
    "subscription_start_date",
    "subscription_expiry_date",
    "max_users",
    "max_employees",
    "is_active",
)


def validate_slug(slug: str) -> str:
    """Normalize and validate an organization slug."""
    slug = (slug or "").strip().lower()
    if not slug or len(slug) > 100 or not SLUG_PATTERN.match(slug):
        raise ValidationError(
            "Slug may only contain lowercase letters, numbers and hyphens",
            code="invalid_slug",
        )
    if slug in RESERVED_ORG_SLUGS:
        raise ValidationError(f"Slug '{slug}' is reserved", code="reserved_slug")
    return slug


def _iso(value: Optional[datetime]) -> Optional[str]:
    value = as_utc(value)
    return value.isoformat() if value else None


class OrganizationService:
    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def serialize(self, org: Organization) -> Dict[str, Any]:
        plan = org.subscription_plan
        user_count = self.db.query(func.count(User.id)).filter(User.organization_id == org.id).scalar()
        employee_count = (
            self.db.query(func.count(Employee.id)).filter(Employee.organization_id == org.id).scalar()
        )
        return {
            "id": org.id,
            "name": org.name,
            "slug": org.slug,
            "code": org.code,
            "email": org.email,
            "phone": org.phone,
            "address": org.address,
            "city": org.city,
            "state": org.state,
            "postal_code": org.postal_code,
            "country": org.country,
            "subscription_plan": {"id": plan.id, "name": plan.name, "code": plan.code} if plan else None,
            "subscription_start_date": _iso(org.subscription_start_date),
            "subscription_expiry_date": _iso(org.subscription_expiry_date),
            "max_users": org.max_users,
            "max_employees": org.max_employees,
            "is_active": bool(org.is_active),
            "status": org.status,
            "is_expired": org.is_expired(),
            "user_count": user_count,
            "employee_count": employee_count,
            "created_at": _iso(org.created_at),
        }

    def list_organizations(self, status: Optional[str] = None, search: Optional[str] = None) -> List[Organization]:
        query = self.db.query(Organization)
        if status:
            query = query.filter(Organization.status == status)
        if search:
            pattern = f"%{search.strip().lower()}%"
            query = query.filter(
                func.lower(Organization.name).like(pattern) | Organization.slug.like(pattern)
            )
        return query.order_by(Organization.name).all()

    def get_organization(self, organization_id: str) -> Organization:
        org = self.db.query(Organization).filter(Organization.id == organization_id).first()
        if org is None:
            raise NotFoundError("Organization not found", code="organization_not_found")
        return org

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def _get_assignable_plan(self, plan_id: Optional[str]) -> SubscriptionPlan:
        if not plan_id:
            raise ValidationError("Subscription plan is required", code="plan_required")
        plan = self.db.query(SubscriptionPlan).filter(SubscriptionPlan.id == plan_id).first()
        if plan is None or not plan.is_active:
            raise ValidationError("Invalid or inactive subscription plan", code="invalid_plan")
        return plan

    def _ensure_email_available(self, email: str) -> str:
        email = (email or "").strip().lower()
        if not email or "@" not in email:
            raise ValidationError("A valid admin email is required", code="invalid_email")
        if self.db.query(User).filter(User.email == email).first() is not None:
            raise ConflictError("Email already registered", code="email_exists")
        return email

    def create_organization(
        self,
        data: Dict[str, Any],
        created_by: Optional[str] = None,
    ) -> Tuple[Organization, User]:
        """
        Create an organization with its modules, org_admin role and admin user.

        Raises:
            ValidationError: invalid slug, plan, email or password
            ConflictError: slug or admin email already in use
        """
        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError("Organization name is required", code="name_required")
        slug = validate_slug(data.get("slug") or "")
        if self.db.query(Organization).filter(Organization.slug == slug).first() is not None:
            raise ConflictError("Organization slug already exists", code="slug_exists")

        plan = self._get_assignable_plan(data.get("subscription_plan_id"))
        admin_email = self._ensure_email_available(data.get("admin_email"))
        password_error = validate_new_password(data.get("admin_password") or "")
        if password_error:
            raise ValidationError(password_error, code="weak_password")

        org = Organization(
            name=name,
            slug=slug,
            code=slug.upper().replace("-", "_"),
            subscription_plan_id=plan.id,
            subscription_start_date=data.get("subscription_start_date") or utc_now(),
            subscription_expiry_date=data.get("subscription_expiry_date"),
            max_users=data.get("max_users") or plan.max_users or 10,
            max_employees=data.get("max_employees") or plan.max_employees or 50,
            is_active=True,
            status=OrganizationStatus.ACTIVE.value,
            created_by=created_by,
        )
        for field in PROFILE_FIELDS:
            if field != "name" and data.get(field) is not None:
                setattr(org, field, data[field])
        self.db.add(org)
        self.db.flush()

        ModuleService(self.db).sync_with_plan(org)
        admin_role = seed_org_admin_role(self.db, org.id, PlanService(self.db).plan_module_codes(plan.id))

        admin = User(
            organization_id=org.id,
            role_id=admin_role.id,
            email=admin_email,
            password_hash=hash_password(data["admin_password"]),
            first_name=data.get("admin_first_name") or "Admin",
            last_name=data.get("admin_last_name"),
            is_super_admin=False,
            is_active=True,
            created_by=created_by,
        )
        self.db.add(admin)
        self.db.flush()

        logger.info(
            "Organization created",
            extra={"org_id": org.id, "slug": slug, "plan_id": plan.id, "created_by": created_by},
        )
        return org, admin

    def sync_plan(self, org: Organization) -> None:
        """Align module toggles and the org_admin grants with the organization's plan."""
        ModuleService(self.db).sync_with_plan(org)

        admin_role = (
            self.db.query(Role)
            .filter(Role.organization_id == org.id, Role.code == ORG_ADMIN_ROLE_CODE)
            .first()
        )
        if admin_role is None:
            return
        existing = {rp.module_code for rp in admin_role.permissions}
        full_access = {action.value: True for action in ALL_ACTIONS}
        for code in PlanService(self.db).plan_module_codes(org.subscription_plan_id):
            if code in existing:
                continue
            rp = RolePermission(role_id=admin_role.id, module_code=code)
            rp.set_flags(full_access)
            self.db.add(rp)
        self.db.flush()
        self.db.expire(admin_role, ["permissions"])
        invalidate_on_commit(self.db, "organization", org.id)

    def resync_plan_organizations(self, plan_id: str) -> int:
        """Re-sync every organization on a plan after the plan's modules changed."""
        organizations = (
            self.db.query(Organization).filter(Organization.subscription_plan_id == plan_id).all()
        )
        for org in organizations:
            self.sync_plan(org)
        return len(organizations)

    def update_organization(
        self,
        organization_id: str,
        data: Dict[str, Any],
        updated_by: Optional[str] = None,
    ) -> Organization:
        org = self.get_organization(organization_id)

        for field in ADMIN_FIELDS:
            if field in data and data[field] is not None:
                setattr(org, field, data[field])

        if data.get("status") is not None:
            try:
                org.status = OrganizationStatus(data["status"]).value
            except ValueError:
                raise ValidationError(f"Invalid status {data['status']}", code="invalid_status")

        plan_changed = False
        new_plan_id = data.get("subscription_plan_id")
        if new_plan_id and new_plan_id != org.subscription_plan_id:
            org.subscription_plan_id = self._get_assignable_plan(new_plan_id).id
            plan_changed = True

        org.updated_by = updated_by
        self.db.flush()
        if plan_changed:
            self.db.expire(org, ["subscription_plan"])
            self.sync_plan(org)

        invalidate_on_commit(self.db, "organization", org.id)
        logger.info(
            "Organization updated",
            extra={"org_id": org.id, "status": org.status, "plan_changed": plan_changed, "updated_by": updated_by},
        )
        return org

    def update_profile(self, organization_id: str, data: Dict[str, Any], updated_by: Optional[str] = None) -> Organization:
        """Portal-side update limited to contact details."""
        org = self.get_organization(organization_id)
        for field in PROFILE_FIELDS:
            if field in data and data[field] is not None:
                setattr(org, field, data[field])
        if not (org.name or "").strip():
            raise ValidationError("Organization name is required", code="name_required")
        org.updated_by = updated_by
        self.db.flush()
        invalidate_on_commit(self.db, "organization", org.id)
        return org

    def delete_organization(self, organization_id: str) -> None:
        """Delete an organization and every row it owns."""
        org = self.get_organization(organization_id)

        role_ids = [r.id for r in self.db.query(Role.id).filter(Role.organization_id == org.id)]
        for model in (Application, Candidate, Employee, MasterDataRecord, User, OrganizationModule):
            self.db.query(model).filter(model.organization_id == org.id).delete(synchronize_session=False)
        if role_ids:
            self.db.query(RolePermission).filter(RolePermission.role_id.in_(role_ids)).delete(
                synchronize_session=False
            )
            self.db.query(Role).filter(Role.id.in_(role_ids)).delete(synchronize_session=False)

        self.db.delete(org)
        self.db.flush()
        invalidate_on_commit(self.db, "organization", organization_id)
        logger.info("Organization deleted", extra={"org_id": organization_id})
