"""
Subscription plan service.

Plans are platform data managed from the super-admin panel. New plans
start with every core module assigned; deleting a plan only deactivates
it, and a plan still assigned to organizations cannot be deleted.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from hr_admin.models.module import OrgModule
from hr_admin.models.organization import Organization
from hr_admin.models.plan import PlanModule, SubscriptionPlan
from hr_admin.platform.errors import ConflictError, NotFoundError, ValidationError
from hr_admin.services.module_service import ModuleService, serialize_org_module

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = (
    "name",
    "description",
    "price_monthly",
    "price_yearly",
    "currency",
    "max_users",
    "max_employees",
    "is_active",
    "display_order",
)


def _money(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


class PlanService:
    def __init__(self, db: Session):
        self.db = db

    def serialize(self, plan: SubscriptionPlan, organization_count: Optional[int] = None) -> Dict[str, Any]:
        modules = sorted(
            (pm.org_module for pm in plan.plan_modules if pm.org_module is not None),
            key=lambda m: (m.display_order, m.code),
        )
        if organization_count is None:
            organization_count = (
                self.db.query(func.count(Organization.id))
                .filter(Organization.subscription_plan_id == plan.id)
                .scalar()
            )
        return {
            "id": plan.id,
            "name": plan.name,
            "code": plan.code,
            "description": plan.description,
            "price_monthly": _money(plan.price_monthly),
            "price_yearly": _money(plan.price_yearly),
            "currency": plan.currency,
            "max_users": plan.max_users,
            "max_employees": plan.max_employees,
            "is_active": bool(plan.is_active),
            "display_order": plan.display_order,
            "organization_count": organization_count,
            "modules": [serialize_org_module(m) for m in modules],
        }

    def list_plans(self, include_inactive: bool = True) -> List[Dict[str, Any]]:
        query = self.db.query(SubscriptionPlan)
        if not include_inactive:
            query = query.filter(SubscriptionPlan.is_active.is_(True))
        plans = query.order_by(SubscriptionPlan.display_order, SubscriptionPlan.name).all()
        return [self.serialize(p) for p in plans]

    def get_plan(self, plan_id: str) -> SubscriptionPlan:
        plan = self.db.query(SubscriptionPlan).filter(SubscriptionPlan.id == plan_id).first()
        if plan is None:
            raise NotFoundError("Subscription plan not found", code="plan_not_found")
        return plan

    def _ensure_unique(self, field: str, value: str, exclude_id: Optional[str] = None) -> None:
        query = self.db.query(SubscriptionPlan).filter(getattr(SubscriptionPlan, field) == value)
        if exclude_id:
            query = query.filter(SubscriptionPlan.id != exclude_id)
        if query.first() is not None:
            raise ConflictError(f"A plan with this {field} already exists", code=f"plan_{field}_exists")

    def create_plan(self, data: Dict[str, Any]) -> SubscriptionPlan:
        name = (data.get("name") or "").strip()
        code = (data.get("code") or "").strip().lower()
        if not name or not code:
            raise ValidationError("Plan name and code are required", code="plan_fields_required")
        self._ensure_unique("name", name)
        self._ensure_unique("code", code)

        plan = SubscriptionPlan(name=name, code=code)
        for field in _UPDATABLE_FIELDS:
            if field != "name" and data.get(field) is not None:
                setattr(plan, field, data[field])
        self.db.add(plan)
        self.db.flush()

        module_ids = list(data.get("module_ids") or [])
        core_ids = [m.id for m in self.db.query(OrgModule).filter(OrgModule.is_core.is_(True))]
        ModuleService(self.db).update_plan_modules(plan.id, list(dict.fromkeys(core_ids + module_ids)))
        self.db.refresh(plan)

        logger.info("Subscription plan created", extra={"plan_id": plan.id, "code": code})
        return plan

    def update_plan(self, plan_id: str, data: Dict[str, Any]) -> SubscriptionPlan:
        plan = self.get_plan(plan_id)
        if data.get("name"):
            self._ensure_unique("name", data["name"].strip(), exclude_id=plan.id)
        for field in _UPDATABLE_FIELDS:
            if field in data and data[field] is not None:
                value = data[field].strip() if field == "name" else data[field]
                setattr(plan, field, value)
        self.db.flush()
        logger.info("Subscription plan updated", extra={"plan_id": plan.id})
        return plan

    def delete_plan(self, plan_id: str) -> SubscriptionPlan:
        """Deactivate a plan no organization is on."""
        plan = self.get_plan(plan_id)
        in_use = (
            self.db.query(func.count(Organization.id))
            .filter(Organization.subscription_plan_id == plan.id)
            .scalar()
        )
        if in_use:
            raise ConflictError(
                "Cannot delete a plan assigned to organizations",
                code="plan_in_use",
                details={"organization_count": in_use},
            )
        plan.is_active = False
        self.db.flush()
        logger.info("Subscription plan deactivated", extra={"plan_id": plan.id})
        return plan

    def plan_module_codes(self, plan_id: str) -> List[str]:
        rows = (
            self.db.query(OrgModule.code)
            .join(PlanModule, PlanModule.org_module_id == OrgModule.id)
            .filter(PlanModule.subscription_plan_id == plan_id)
            .all()
        )
        return [code for (code,) in rows]
