"""
Idempotent seed data: module catalogs, a default plan and the bootstrap
super admin.

Every function can run against a populated database; existing rows are
updated in place (catalog) or left alone (plan, super admin). Callers
commit.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from hr_admin.auth.passwords import hash_password, validate_new_password
from hr_admin.config.module_catalog import ModuleCatalog, get_module_catalog
from hr_admin.models.module import OrgModule, PlatformModule
from hr_admin.models.plan import SubscriptionPlan
from hr_admin.models.user import User
from hr_admin.services.module_service import ModuleService

logger = logging.getLogger(__name__)

DEFAULT_PLAN_CODE = "standard"


def seed_module_catalog(db: Session, catalog: Optional[ModuleCatalog] = None) -> int:
    """Upsert org_modules and platform_modules from the YAML catalog."""
    catalog = catalog or get_module_catalog()
    created = 0

    existing_org = {m.code: m for m in db.query(OrgModule)}
    for entry in catalog.org_modules:
        module = existing_org.get(entry.code)
        if module is None:
            module = OrgModule(code=entry.code)
            db.add(module)
            created += 1
        module.name = entry.name
        module.description = entry.description
        module.icon = entry.icon
        module.display_order = entry.display_order
        module.is_core = entry.is_core
        module.is_active = True

    existing_platform = {m.code: m for m in db.query(PlatformModule)}
    for entry in catalog.platform_modules:
        module = existing_platform.get(entry.code)
        if module is None:
            module = PlatformModule(code=entry.code)
            db.add(module)
            created += 1
        module.name = entry.name
        module.description = entry.description
        module.icon = entry.icon
        module.display_order = entry.display_order
        module.is_active = True

    db.flush()
    logger.info("Module catalog seeded", extra={"created": created})
    return created


def seed_default_plan(db: Session) -> SubscriptionPlan:
    """Create the default plan with every org module, unless it exists."""
    plan = db.query(SubscriptionPlan).filter(SubscriptionPlan.code == DEFAULT_PLAN_CODE).first()
    if plan is not None:
        return plan

    plan = SubscriptionPlan(
        name="Standard",
        code=DEFAULT_PLAN_CODE,
        description="All HR modules",
        currency="INR",
        display_order=1,
    )
    db.add(plan)
    db.flush()
    module_ids = [m.id for m in db.query(OrgModule).filter(OrgModule.is_active.is_(True))]
    ModuleService(db).update_plan_modules(plan.id, module_ids)
    logger.info("Default plan seeded", extra={"plan_id": plan.id, "modules": len(module_ids)})
    return plan


def seed_super_admin(db: Session, email: str, password: str) -> User:
    """
    Create the bootstrap super admin.

    The account has no platform role, which grants every platform module.
    An existing account with the same email is returned unchanged.
    """
    email = email.strip().lower()
    user = db.query(User).filter(User.email == email).first()
    if user is not None:
        if not user.is_super_admin:
            logger.warning("Seed email belongs to a non super admin account", extra={"user_id": user.id})
        return user

    password_error = validate_new_password(password)
    if password_error:
        raise ValueError(password_error)

    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name="Super",
        last_name="Admin",
        is_super_admin=True,
        is_active=True,
    )
    db.add(user)
    db.flush()
    logger.info("Super admin seeded", extra={"user_id": user.id})
    return user
