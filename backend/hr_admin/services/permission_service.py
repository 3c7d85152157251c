"""
Role permission matrix service.

A role's permissions are one RolePermission row per module code with six
boolean flags. Reads return every module relevant to the role (org
modules for organization roles; platform and org modules for platform
roles, since support mode evaluates the platform role against org module
codes). Writes validate codes against the closed registries, store only
rows with at least one granted action, and invalidate cached profiles of
the role's users.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping

from sqlalchemy.orm import Session

from hr_admin.constants.messages import RoleMessages
from hr_admin.constants.modules import ALL_ACTIONS, parse_module_code, parse_org_module_code
from hr_admin.models.module import OrgModule, PlatformModule
from hr_admin.models.role import Role, RolePermission
from hr_admin.platform.errors import NotFoundError, PermissionDeniedError
from hr_admin.platform.policy import PermissionGrant
from hr_admin.services.permission_cache import invalidate_on_commit

logger = logging.getLogger(__name__)


def _validate_code(role: Role, module_code: str) -> str:
    if role.is_platform_role:
        return parse_module_code(module_code).value
    return parse_org_module_code(module_code).value


def _guard_mutable(role: Role) -> None:
    if role.is_org_admin:
        raise PermissionDeniedError(RoleMessages.ORG_ADMIN_PERMISSIONS, code="org_admin_immutable")


class PermissionService:
    def __init__(self, db: Session):
        self.db = db

    def _module_rows(self, role: Role) -> List[Dict[str, Any]]:
        modules: List[Dict[str, Any]] = []
        seen = set()
        if role.is_platform_role:
            for m in self.db.query(PlatformModule).order_by(PlatformModule.display_order).all():
                modules.append({"module_code": m.code, "module_name": m.name, "scope": "platform"})
                seen.add(m.code)
        for m in (
            self.db.query(OrgModule)
            .filter(OrgModule.is_active.is_(True))
            .order_by(OrgModule.display_order)
            .all()
        ):
            if m.code in seen:
                continue
            modules.append({"module_code": m.code, "module_name": m.name, "scope": "organization"})
        return modules

    def get_role_permissions(self, role: Role) -> List[Dict[str, Any]]:
        """Every relevant module with the role's normalized flags (all false when no row)."""
        rows = {
            rp.module_code: rp
            for rp in self.db.query(RolePermission).filter(RolePermission.role_id == role.id)
        }
        result = []
        for module in self._module_rows(role):
            row = rows.get(module["module_code"])
            flags = row.flags() if row is not None else PermissionGrant().as_dict()
            result.append({**module, **flags})
        return result

    def replace_role_permissions(self, role: Role, entries: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        """
        Replace the whole matrix of a role.

        Raises:
            PermissionDeniedError: the role is an organization's org_admin
            NotFoundError: an entry names an unknown module code
        """
        _guard_mutable(role)

        grants: Dict[str, PermissionGrant] = {}
        for entry in entries:
            code = _validate_code(role, str(entry.get("module_code", "")))
            grants[code] = PermissionGrant.from_flags(entry)

        self.db.query(RolePermission).filter(RolePermission.role_id == role.id).delete(
            synchronize_session=False
        )
        # Only rows granting at least one action are stored
        for code, grant in grants.items():
            if not grant.allows_any():
                continue
            rp = RolePermission(role_id=role.id, module_code=code)
            rp.set_flags(grant.as_dict())
            self.db.add(rp)
        self.db.flush()
        self.db.expire(role, ["permissions"])

        invalidate_on_commit(self.db, "role", role.id)
        logger.info(
            "Role permissions replaced",
            extra={
                "role_id": role.id,
                "org_id": role.organization_id,
                "granted_modules": sum(1 for g in grants.values() if g.allows_any()),
            },
        )
        return self.get_role_permissions(role)

    def update_module_permission(
        self,
        role: Role,
        module_code: str,
        flags: Mapping[str, Any],
    ) -> Dict[str, Any]:
        """
        Upsert the flags of one module. Flags not present keep their value.

        An update that leaves every flag false removes the row.
        """
        _guard_mutable(role)
        code = _validate_code(role, module_code)

        row = (
            self.db.query(RolePermission)
            .filter(RolePermission.role_id == role.id, RolePermission.module_code == code)
            .first()
        )
        current = row.flags() if row is not None else PermissionGrant().as_dict()
        incoming = PermissionGrant.from_flags(flags).as_dict()
        merged = {}
        for action in ALL_ACTIONS:
            present = any(
                key in flags
                for key in (action.value, action.column, "can" + action.value.capitalize())
            )
            merged[action.value] = incoming[action.value] if present else current[action.value]

        if not any(merged.values()):
            if row is not None:
                self.db.delete(row)
        else:
            if row is None:
                row = RolePermission(role_id=role.id, module_code=code)
                self.db.add(row)
            row.set_flags(merged)
        self.db.flush()
        self.db.expire(role, ["permissions"])

        invalidate_on_commit(self.db, "role", role.id)
        logger.info(
            "Role module permission updated",
            extra={"role_id": role.id, "module": code, "flags": merged},
        )
        return {"module_code": code, **merged}


def permissions_for_profile(role: Role) -> List[Dict[str, Any]]:
    """Granted rows of a role in the shape embedded in user profiles."""
    result = []
    for rp in role.permissions:
        try:
            parse_module_code(rp.module_code)
        except NotFoundError:
            # Rows for codes dropped from the registry are never granted
            continue
        flags = rp.flags()
        if any(flags.values()):
            result.append({"module_code": rp.module_code, **{a.column: flags[a.value] for a in ALL_ACTIONS}})
    return result
