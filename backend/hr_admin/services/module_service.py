"""
Module enablement service.

Rules:
- Core modules are always enabled and must be part of every plan
- A non-core module is enabled for an organization only when an
  OrganizationModule row says so
- An organization may only enable modules that belong to its plan
- Toggling modules invalidates cached permission profiles of the
  organization
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from hr_admin.constants.modules import OrgModuleCode, is_core_module
from hr_admin.models.base import utc_now
from hr_admin.models.module import OrgModule, OrganizationModule, PlatformModule
from hr_admin.models.organization import Organization
from hr_admin.models.plan import PlanModule, SubscriptionPlan
from hr_admin.platform.errors import NotFoundError, ValidationError
from hr_admin.platform.policy import ModuleState
from hr_admin.services.permission_cache import invalidate_on_commit

logger = logging.getLogger(__name__)


@dataclass
class ModuleToggle:
    org_module_id: str
    is_enabled: bool


def serialize_org_module(module: OrgModule, **extra) -> dict:
    return {
        "id": module.id,
        "code": module.code,
        "name": module.name,
        "description": module.description,
        "is_core": bool(module.is_core),
        "icon": module.icon,
        "display_order": module.display_order,
        **extra,
    }


def serialize_platform_module(module: PlatformModule) -> dict:
    return {
        "id": module.id,
        "code": module.code,
        "name": module.name,
        "description": module.description,
        "icon": module.icon,
        "display_order": module.display_order,
    }


class ModuleService:
    """Reads and updates module catalogs, plan membership and org toggles."""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Enablement
    # ------------------------------------------------------------------

    def _is_core(self, module: OrgModule) -> bool:
        try:
            return bool(module.is_core) or is_core_module(OrgModuleCode(module.code))
        except ValueError:
            return bool(module.is_core)

    def module_state(self, organization_id: Optional[str], module_code: str) -> ModuleState:
        """Enablement state of a module code for an organization."""
        try:
            code = OrgModuleCode(module_code)
        except ValueError:
            return ModuleState.UNKNOWN

        module = self.db.query(OrgModule).filter(OrgModule.code == code.value).first()
        if module is None or not module.is_active:
            return ModuleState.UNKNOWN

        if self._is_core(module):
            return ModuleState.ENABLED

        toggle = (
            self.db.query(OrganizationModule)
            .filter(
                OrganizationModule.organization_id == organization_id,
                OrganizationModule.org_module_id == module.id,
            )
            .first()
        )
        if toggle is None or toggle.is_enabled is not True:
            return ModuleState.DISABLED
        return ModuleState.ENABLED

    def is_module_enabled(self, organization_id: str, module_code: str) -> bool:
        return self.module_state(organization_id, module_code) is ModuleState.ENABLED

    def list_enabled_modules(self, organization_id: str) -> List[OrgModule]:
        """Active modules enabled for an organization, in display order."""
        enabled_ids = {
            row.org_module_id
            for row in self.db.query(OrganizationModule).filter(
                OrganizationModule.organization_id == organization_id,
                OrganizationModule.is_enabled.is_(True),
            )
        }
        modules = (
            self.db.query(OrgModule)
            .filter(OrgModule.is_active.is_(True))
            .order_by(OrgModule.display_order, OrgModule.code)
            .all()
        )
        return [m for m in modules if self._is_core(m) or m.id in enabled_ids]

    # ------------------------------------------------------------------
    # Catalogs
    # ------------------------------------------------------------------

    def list_org_modules(self) -> List[OrgModule]:
        return (
            self.db.query(OrgModule)
            .filter(OrgModule.is_active.is_(True))
            .order_by(OrgModule.display_order, OrgModule.code)
            .all()
        )

    def list_platform_modules(self) -> List[PlatformModule]:
        return (
            self.db.query(PlatformModule)
            .order_by(PlatformModule.display_order, PlatformModule.code)
            .all()
        )

    # ------------------------------------------------------------------
    # Plan membership
    # ------------------------------------------------------------------

    def _get_plan(self, plan_id: str) -> SubscriptionPlan:
        plan = self.db.query(SubscriptionPlan).filter(SubscriptionPlan.id == plan_id).first()
        if plan is None:
            raise NotFoundError("Subscription plan not found", code="plan_not_found")
        return plan

    def plan_module_ids(self, plan_id: str) -> set[str]:
        return {
            row.org_module_id
            for row in self.db.query(PlanModule).filter(PlanModule.subscription_plan_id == plan_id)
        }

    def get_plan_modules(self, plan_id: str) -> tuple[SubscriptionPlan, List[dict]]:
        """All catalog modules with their assignment status for a plan."""
        plan = self._get_plan(plan_id)
        assigned = self.plan_module_ids(plan_id)
        modules = [
            serialize_org_module(m, is_assigned=m.id in assigned)
            for m in self.list_org_modules()
        ]
        return plan, modules

    def update_plan_modules(self, plan_id: str, module_ids: Iterable[str]) -> List[OrgModule]:
        """
        Replace a plan's module set.

        Raises:
            ValidationError: unknown module ids, or core modules missing
        """
        plan = self._get_plan(plan_id)
        requested = list(dict.fromkeys(module_ids))

        valid = self.db.query(OrgModule).filter(OrgModule.id.in_(requested)).all() if requested else []
        if len(valid) != len(requested):
            raise ValidationError("One or more module IDs are invalid", code="invalid_module_ids")

        core_modules = [m for m in self.list_org_modules() if self._is_core(m)]
        missing_core = [m for m in core_modules if m.id not in set(requested)]
        if missing_core:
            names = ", ".join(m.name for m in missing_core)
            raise ValidationError(
                f"Core modules cannot be removed: {names}",
                code="core_modules_required",
                details={"missing": [m.code for m in missing_core]},
            )

        self.db.query(PlanModule).filter(PlanModule.subscription_plan_id == plan.id).delete(
            synchronize_session=False
        )
        for module in valid:
            self.db.add(PlanModule(subscription_plan_id=plan.id, org_module_id=module.id))
        self.db.flush()
        self.db.expire(plan, ["plan_modules"])

        logger.info(
            "Plan modules updated",
            extra={"plan_id": plan.id, "module_count": len(valid)},
        )
        return sorted(valid, key=lambda m: (m.display_order, m.code))

    # ------------------------------------------------------------------
    # Organization toggles
    # ------------------------------------------------------------------

    def _get_organization(self, organization_id: str) -> Organization:
        org = self.db.query(Organization).filter(Organization.id == organization_id).first()
        if org is None:
            raise NotFoundError("Organization not found", code="organization_not_found")
        return org

    def get_organization_modules(self, organization_id: str) -> tuple[Organization, List[dict]]:
        """Plan modules of an organization with their enabled status."""
        org = self._get_organization(organization_id)
        plan_ids = self.plan_module_ids(org.subscription_plan_id)
        toggles = {
            row.org_module_id: row
            for row in self.db.query(OrganizationModule).filter(
                OrganizationModule.organization_id == org.id
            )
        }
        modules = []
        for module in self.list_org_modules():
            if module.id not in plan_ids:
                continue
            core = self._is_core(module)
            toggle = toggles.get(module.id)
            enabled = core or (toggle is not None and toggle.is_enabled is True)
            modules.append(serialize_org_module(module, is_enabled=enabled, can_disable=not core))
        return org, modules

    def _upsert_toggle(self, organization_id: str, module: OrgModule, is_enabled: bool) -> OrganizationModule:
        now = utc_now()
        row = (
            self.db.query(OrganizationModule)
            .filter(
                OrganizationModule.organization_id == organization_id,
                OrganizationModule.org_module_id == module.id,
            )
            .first()
        )
        if row is None:
            row = OrganizationModule(
                organization_id=organization_id,
                org_module_id=module.id,
                is_enabled=is_enabled,
                enabled_at=now,
                disabled_at=None if is_enabled else now,
            )
            self.db.add(row)
        elif bool(row.is_enabled) != is_enabled:
            row.is_enabled = is_enabled
            if is_enabled:
                row.enabled_at = now
                row.disabled_at = None
            else:
                row.disabled_at = now
        return row

    def update_organization_modules(
        self,
        organization_id: str,
        toggles: Iterable[ModuleToggle],
    ) -> List[dict]:
        """
        Enable or disable plan modules for an organization.

        Raises:
            ValidationError: module outside the plan, or a core module disabled
        """
        org = self._get_organization(organization_id)
        plan_ids = self.plan_module_ids(org.subscription_plan_id)

        for toggle in toggles:
            if toggle.org_module_id not in plan_ids:
                raise ValidationError(
                    f"Module {toggle.org_module_id} is not part of the organization's plan",
                    code="module_not_in_plan",
                )
            module = self.db.query(OrgModule).filter(OrgModule.id == toggle.org_module_id).first()
            if module is None:
                raise NotFoundError(f"Module {toggle.org_module_id} not found", code="module_not_found")
            if not toggle.is_enabled and self._is_core(module):
                raise ValidationError(
                    f"Core module {module.name} cannot be disabled",
                    code="core_module_required",
                )
            self._upsert_toggle(org.id, module, toggle.is_enabled)

        self.db.flush()
        invalidate_on_commit(self.db, "organization", org.id)
        logger.info("Organization modules updated", extra={"org_id": org.id})
        return self.get_organization_modules(org.id)[1]

    def sync_with_plan(self, organization: Organization) -> None:
        """
        Align an organization's toggles with its plan.

        Newly included plan modules are enabled; modules no longer in the
        plan are disabled.
        """
        plan_ids = self.plan_module_ids(organization.subscription_plan_id)
        existing = {
            row.org_module_id: row
            for row in self.db.query(OrganizationModule).filter(
                OrganizationModule.organization_id == organization.id
            )
        }
        for module in self.db.query(OrgModule).filter(OrgModule.id.in_(plan_ids)).all() if plan_ids else []:
            if module.id not in existing:
                self._upsert_toggle(organization.id, module, True)
        for module_id, row in existing.items():
            if module_id not in plan_ids and row.is_enabled:
                row.is_enabled = False
                row.disabled_at = utc_now()
        self.db.flush()
        invalidate_on_commit(self.db, "organization", organization.id)

