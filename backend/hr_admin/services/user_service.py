"""
Portal user management within one organization.

Rules:
- Emails are globally unique and stored lowercase
- A user's role must belong to the same organization
- The organization's max_users limit applies to new accounts
- Users cannot delete or deactivate themselves
- Role and status changes invalidate the user's cached profile
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from hr_admin.auth.passwords import hash_password, validate_new_password
from hr_admin.constants.messages import RoleMessages
from hr_admin.models.organization import Organization
from hr_admin.models.role import Role
from hr_admin.models.user import User
from hr_admin.platform.errors import ConflictError, NotFoundError, ValidationError
from hr_admin.services.permission_cache import invalidate_on_commit

logger = logging.getLogger(__name__)

_PROFILE_FIELDS = ("first_name", "last_name", "phone")


class UserService:
    def __init__(self, db: Session, organization_id: str):
        self.db = db
        self.organization_id = organization_id

    def _scoped(self):
        return self.db.query(User).filter(User.organization_id == self.organization_id)

    def list_users(self, role_id: Optional[str] = None, active_only: bool = False) -> List[User]:
        query = self._scoped()
        if role_id:
            query = query.filter(User.role_id == role_id)
        if active_only:
            query = query.filter(User.is_active.is_(True))
        return query.order_by(User.email).all()

    def get_user(self, user_id: str) -> User:
        user = self._scoped().filter(User.id == user_id).first()
        if user is None:
            raise NotFoundError("User not found", code="user_not_found")
        return user

    def _validate_role(self, role_id: Optional[str]) -> Optional[str]:
        if not role_id:
            return None
        role = (
            self.db.query(Role)
            .filter(Role.id == role_id, Role.organization_id == self.organization_id)
            .first()
        )
        if role is None:
            raise ValidationError(RoleMessages.ROLE_NOT_IN_ORGANIZATION, code="invalid_role")
        return role.id

    def create_user(self, data: Dict[str, Any], created_by: Optional[str] = None) -> User:
        email = (data.get("email") or "").strip().lower()
        if not email or "@" not in email:
            raise ValidationError("A valid email is required", code="invalid_email")
        if self.db.query(User).filter(User.email == email).first() is not None:
            raise ConflictError("Email already registered", code="email_exists")

        password_error = validate_new_password(data.get("password") or "")
        if password_error:
            raise ValidationError(password_error, code="weak_password")

        role_id = self._validate_role(data.get("role_id"))

        limit = (
            self.db.query(Organization.max_users)
            .filter(Organization.id == self.organization_id)
            .scalar()
        )
        count = self._scoped().with_entities(func.count(User.id)).scalar()
        if limit is not None and count >= limit:
            raise ValidationError("User limit reached for this organization", code="user_limit_reached")

        user = User(
            organization_id=self.organization_id,
            role_id=role_id,
            email=email,
            password_hash=hash_password(data["password"]),
            is_super_admin=False,
            is_active=data.get("is_active", True) is not False,
            created_by=created_by,
        )
        for field in _PROFILE_FIELDS:
            if data.get(field) is not None:
                setattr(user, field, data[field])
        self.db.add(user)
        self.db.flush()
        logger.info(
            "User created",
            extra={"org_id": self.organization_id, "user_id": user.id, "created_by": created_by},
        )
        return user

    def update_user(self, user_id: str, data: Dict[str, Any], acting_user_id: Optional[str] = None) -> User:
        user = self.get_user(user_id)

        for field in _PROFILE_FIELDS:
            if field in data and data[field] is not None:
                setattr(user, field, data[field])

        if "role_id" in data:
            user.role_id = self._validate_role(data["role_id"])

        if data.get("is_active") is not None:
            if not data["is_active"] and user.id == acting_user_id:
                raise ValidationError("You cannot deactivate your own account", code="self_deactivation")
            user.is_active = bool(data["is_active"])

        if data.get("password"):
            password_error = validate_new_password(data["password"])
            if password_error:
                raise ValidationError(password_error, code="weak_password")
            user.password_hash = hash_password(data["password"])

        self.db.flush()
        self.db.expire(user, ["role"])
        invalidate_on_commit(self.db, "user", user.id)
        logger.info("User updated", extra={"org_id": self.organization_id, "user_id": user.id})
        return user

    def delete_user(self, user_id: str, acting_user_id: Optional[str] = None) -> None:
        user = self.get_user(user_id)
        if user.id == acting_user_id:
            raise ValidationError("You cannot delete your own account", code="self_deletion")
        self.db.delete(user)
        self.db.flush()
        invalidate_on_commit(self.db, "user", user_id)
        logger.info("User deleted", extra={"org_id": self.organization_id, "user_id": user_id})
