"""
Login, token refresh and user profile assembly.

Login rules, in order:
1. Email is matched lowercase; unknown email -> 401
2. Locked account (locked_until in the future) -> 403
3. Inactive account -> 403
4. Wrong password -> 401, failed_login_attempts incremented; reaching
   MAX_FAILED_LOGIN_ATTEMPTS locks the account for ACCOUNT_LOCK_MINUTES
5. Super admins must not name an organization slug
6. Organization users need an organization, matching the slug when one
   is given, that is active, not suspended and not expired
Success resets the failure counter and records last_login_at.

The profile (user, organization, granted permissions, enabled modules)
is served through the permission cache.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from hr_admin.auth.jwt import TokenType
from hr_admin.auth.passwords import verify_password
from hr_admin.auth.token_service import decode_token, issue_access_token, issue_refresh_token
from hr_admin.config.settings import get_settings
from hr_admin.constants.messages import AuthMessages
from hr_admin.models.base import as_utc, utc_now
from hr_admin.models.organization import Organization
from hr_admin.models.user import User
from hr_admin.platform.errors import AuthenticationError, PermissionDeniedError, TenantIsolationError
from hr_admin.platform.tenant_context import organization_status_violation
from hr_admin.services.module_service import ModuleService
from hr_admin.services.permission_cache import get_permission_cache
from hr_admin.services.permission_service import permissions_for_profile

logger = logging.getLogger(__name__)


def _iso(value) -> Optional[str]:
    value = as_utc(value)
    return value.isoformat() if value else None


def serialize_user(user: User) -> Dict[str, Any]:
    role = user.role
    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "full_name": user.full_name,
        "phone": user.phone,
        "organization_id": user.organization_id,
        "role_id": user.role_id,
        "role": {"id": role.id, "name": role.name, "code": role.code} if role else None,
        "is_super_admin": bool(user.is_super_admin),
        "is_active": bool(user.is_active),
        "last_login_at": _iso(user.last_login_at),
    }


def serialize_organization_summary(organization: Optional[Organization]) -> Optional[Dict[str, Any]]:
    if organization is None:
        return None
    return {
        "id": organization.id,
        "name": organization.name,
        "slug": organization.slug,
        "status": organization.status,
        "is_active": bool(organization.is_active),
        "subscription_plan_id": organization.subscription_plan_id,
        "subscription_expiry_date": _iso(organization.subscription_expiry_date),
    }


class AuthService:
    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def build_profile(self, user: User) -> Dict[str, Any]:
        """Assemble the profile from the database, bypassing the cache."""
        permissions: List[Dict[str, Any]] = []
        if user.role is not None and user.role.is_active:
            permissions = permissions_for_profile(user.role)

        enabled_modules: List[str] = []
        if user.organization_id:
            enabled_modules = [
                m.code for m in ModuleService(self.db).list_enabled_modules(user.organization_id)
            ]

        return {
            "user": serialize_user(user),
            "organization": serialize_organization_summary(user.organization),
            "permissions": permissions,
            "enabled_modules": enabled_modules,
        }

    def get_profile(self, user_id: str) -> Dict[str, Any]:
        """Profile of an active user, served read-through from the permission cache."""
        user = self._get_active_user(user_id)
        return get_permission_cache().get_or_load(user.id, lambda: self.build_profile(user))

    def _get_active_user(self, user_id: str) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if user is None or not user.is_active:
            raise AuthenticationError(AuthMessages.UNAUTHORIZED)
        return user

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def _register_failed_attempt(self, user: User) -> None:
        user.failed_login_attempts = (user.failed_login_attempts or 0) + 1
        if user.failed_login_attempts >= self.settings.max_failed_login_attempts:
            user.locked_until = utc_now() + timedelta(minutes=self.settings.account_lock_minutes)
            logger.warning(
                "Account locked after failed login attempts",
                extra={"user_id": user.id, "attempts": user.failed_login_attempts},
            )
        self.db.flush()

    def _check_organization_login(self, user: User, org_slug: Optional[str]) -> None:
        slug = (org_slug or "").strip().lower() or None

        if user.is_super_admin:
            if slug:
                raise PermissionDeniedError(AuthMessages.SUPER_ADMIN_ORG_LOGIN, code="super_admin_org_login")
            return

        organization = user.organization
        if organization is None:
            raise TenantIsolationError(AuthMessages.NO_ORGANIZATION, code="no_organization")
        if slug and organization.slug != slug:
            raise TenantIsolationError(AuthMessages.WRONG_ORGANIZATION_LOGIN, code="cross_tenant_access")

        violation = organization_status_violation(organization)
        if violation is not None:
            raise violation[1]

    def login(self, email: str, password: str, org_slug: Optional[str] = None) -> Dict[str, Any]:
        """
        Authenticate with email and password.

        Returns:
            {"user": profile, "token": access token, "refresh_token": refresh token}
        """
        normalized = (email or "").strip().lower()
        user = self.db.query(User).filter(User.email == normalized).first()
        if user is None:
            logger.info("Login failed: unknown email")
            raise AuthenticationError(AuthMessages.INVALID_CREDENTIALS, code="invalid_credentials")

        # Lock is reported before the password check, so a locked account is
        # distinguishable to unauthenticated callers; failed attempts stop
        # counting while it is locked.
        if user.is_locked():
            logger.warning("Login attempt on locked account", extra={"user_id": user.id})
            raise PermissionDeniedError(AuthMessages.ACCOUNT_LOCKED, code="account_locked")

        if not user.is_active:
            raise PermissionDeniedError(AuthMessages.ACCOUNT_INACTIVE, code="account_inactive")

        if not verify_password(password or "", user.password_hash):
            self._register_failed_attempt(user)
            logger.info("Login failed: wrong password", extra={"user_id": user.id})
            raise AuthenticationError(AuthMessages.INVALID_CREDENTIALS, code="invalid_credentials")

        self._check_organization_login(user, org_slug)

        user.failed_login_attempts = 0
        user.locked_until = None
        user.last_login_at = utc_now()
        self.db.flush()

        get_permission_cache().invalidate_user(user.id)
        profile = get_permission_cache().get_or_load(user.id, lambda: self.build_profile(user))

        logger.info(
            "Login successful",
            extra={"user_id": user.id, "org_id": user.organization_id, "super_admin": bool(user.is_super_admin)},
        )
        return {
            "user": profile,
            "token": issue_access_token(user),
            "refresh_token": issue_refresh_token(user),
        }

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def refresh(self, refresh_token: str) -> Dict[str, Any]:
        """Exchange a refresh token for a new access token carrying current claims."""
        claims = decode_token(refresh_token, TokenType.REFRESH)
        user = self._get_active_user(claims.sub)
        if user.is_locked():
            raise PermissionDeniedError(AuthMessages.ACCOUNT_LOCKED, code="account_locked")
        return {"token": issue_access_token(user)}
