"""
Role management service.

Roles are scoped to one organization, or to the platform when
organization_id is None. A service instance is bound to one scope and
never reads or writes roles outside it.

Rules:
- (organization_id, code) is unique
- System roles (seeded org_admin) cannot be modified or deleted
- Roles with assigned users cannot be deleted
"""

import logging
import re
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from hr_admin.constants.messages import RoleMessages
from hr_admin.models.role import Role
from hr_admin.models.user import User
from hr_admin.platform.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from hr_admin.services.permission_cache import invalidate_on_commit

logger = logging.getLogger(__name__)

_CODE_PATTERN = re.compile(r"[^a-z0-9]+")


def normalize_role_code(value: str) -> str:
    """'HR Manager' -> 'hr_manager'."""
    return _CODE_PATTERN.sub("_", value.strip().lower()).strip("_")


class RoleService:
    """CRUD over roles of one scope (organization or platform)."""

    def __init__(self, db: Session, organization_id: Optional[str] = None):
        self.db = db
        self.organization_id = organization_id

    def _scoped(self):
        query = self.db.query(Role)
        if self.organization_id is None:
            return query.filter(Role.organization_id.is_(None))
        return query.filter(Role.organization_id == self.organization_id)

    def _user_counts(self, role_ids: List[str]) -> Dict[str, int]:
        if not role_ids:
            return {}
        rows = (
            self.db.query(User.role_id, func.count(User.id))
            .filter(User.role_id.in_(role_ids))
            .group_by(User.role_id)
            .all()
        )
        return {role_id: count for role_id, count in rows}

    def serialize(self, role: Role, user_count: Optional[int] = None) -> Dict[str, Any]:
        if user_count is None:
            user_count = self._user_counts([role.id]).get(role.id, 0)
        return {
            "id": role.id,
            "organization_id": role.organization_id,
            "name": role.name,
            "code": role.code,
            "description": role.description,
            "is_system": bool(role.is_system),
            "is_active": bool(role.is_active),
            "user_count": user_count,
            "created_at": role.created_at.isoformat() if role.created_at else None,
        }

    def list_roles(self, include_inactive: bool = True) -> List[Dict[str, Any]]:
        query = self._scoped()
        if not include_inactive:
            query = query.filter(Role.is_active.is_(True))
        roles = query.order_by(Role.name).all()
        counts = self._user_counts([r.id for r in roles])
        return [self.serialize(r, counts.get(r.id, 0)) for r in roles]

    def get_role(self, role_id: str) -> Role:
        """Fetch a role of this scope; roles of other scopes are reported as missing."""
        role = self._scoped().filter(Role.id == role_id).first()
        if role is None:
            raise NotFoundError(RoleMessages.NOT_FOUND, code="role_not_found")
        return role

    def create_role(
        self,
        name: str,
        code: Optional[str] = None,
        description: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> Role:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Role name is required", code="role_name_required")
        code = normalize_role_code(code or name)
        if not code:
            raise ValidationError("Role code is invalid", code="role_code_invalid")

        if self._scoped().filter(Role.code == code).first() is not None:
            raise ConflictError(RoleMessages.CODE_EXISTS, code="role_code_exists")

        role = Role(
            organization_id=self.organization_id,
            name=name,
            code=code,
            description=description,
            is_system=False,
            is_active=True,
            created_by=created_by,
        )
        self.db.add(role)
        self.db.flush()

        logger.info(
            "Role created",
            extra={"role_id": role.id, "org_id": self.organization_id, "code": code},
        )
        return role

    def update_role(
        self,
        role_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> Role:
        role = self.get_role(role_id)
        if role.is_system:
            raise PermissionDeniedError(RoleMessages.SYSTEM_UPDATE, code="system_role_immutable")

        if name is not None:
            if not name.strip():
                raise ValidationError("Role name is required", code="role_name_required")
            role.name = name.strip()
        if description is not None:
            role.description = description
        if is_active is not None:
            role.is_active = is_active

        self.db.flush()
        invalidate_on_commit(self.db, "role", role.id)
        logger.info("Role updated", extra={"role_id": role.id, "org_id": self.organization_id})
        return role

    def delete_role(self, role_id: str) -> None:
        role = self.get_role(role_id)
        if role.is_system:
            raise PermissionDeniedError(RoleMessages.SYSTEM_DELETE, code="system_role_immutable")

        if self._user_counts([role.id]).get(role.id, 0) > 0:
            raise ConflictError(RoleMessages.HAS_USERS, code="role_has_users")

        self.db.delete(role)
        self.db.flush()
        invalidate_on_commit(self.db, "role", role_id)
        logger.info("Role deleted", extra={"role_id": role_id, "org_id": self.organization_id})
