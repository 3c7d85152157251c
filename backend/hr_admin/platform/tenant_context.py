"""
Multi-tenant context enforcement for the organization portal.

CRITICAL SECURITY REQUIREMENTS:
- The organization is resolved from the {org_slug} path segment and then
  checked against the caller's verified token, never trusted on its own
- Inactive, suspended and expired organizations are rejected before any
  permission check runs
- Super admins reach an organization only in support mode: the
  X-Impersonate-Org header must name the same slug as the URL
- Regular users reach only their own organization

Resolution order (each step a distinct error):
1. missing slug                     -> 400
2. unknown organization             -> 404
3. inactive or suspended            -> 403
4. subscription expired             -> 403
5. super admin without matching impersonation header -> 403
6. user without organization / other organization    -> 403

Usage:
    router = APIRouter(
        prefix="/api/v1/{org_slug}",
        dependencies=[Depends(authenticate), Depends(resolve_tenant_context)],
    )

    @router.get("/things")
    async def list_things(request: Request):
        tenant = get_tenant_context(request)
"""

import logging
import uuid
from enum import Enum
from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from hr_admin.auth.jwt import AuthenticatedUser
from hr_admin.auth.middleware import authenticate, refresh_identity
from hr_admin.constants.messages import OrgMessages
from hr_admin.constants.modules import OrganizationStatus
from hr_admin.database.session import get_db_session
from hr_admin.models.organization import Organization
from hr_admin.platform.errors import (
    NotFoundError,
    TenantIsolationError,
    ValidationError,
)

logger = logging.getLogger(__name__)

IMPERSONATION_HEADER = "X-Impersonate-Org"


class TenantViolationType(str, Enum):
    """Types of tenant context violations for logging."""
    MISSING_SLUG = "missing_slug"
    ORGANIZATION_NOT_FOUND = "organization_not_found"
    ORGANIZATION_INACTIVE = "organization_inactive"
    ORGANIZATION_SUSPENDED = "organization_suspended"
    SUBSCRIPTION_EXPIRED = "subscription_expired"
    SUPER_ADMIN_WITHOUT_IMPERSONATION = "super_admin_without_impersonation"
    NO_ORGANIZATION = "no_organization"
    CROSS_TENANT_ACCESS = "cross_tenant_access"


def _emit_tenant_violation_log(
    request: Request,
    violation_type: TenantViolationType,
    user: Optional[AuthenticatedUser] = None,
    org_slug: Optional[str] = None,
    org_id: Optional[str] = None,
) -> str:
    """
    Log a tenant context violation at WARNING level.

    Never raises. Returns the correlation ID of the violation.
    """
    correlation_id = str(uuid.uuid4())

    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        ip_address = forwarded_for.split(",")[0].strip()
    else:
        ip_address = request.client.host if request.client else None

    logger.warning(
        "Tenant context violation",
        extra={
            "correlation_id": correlation_id,
            "violation_type": violation_type.value,
            "path": request.url.path,
            "method": request.method,
            "ip_address": ip_address,
            "user_id": user.user_id if user else None,
            "org_slug": org_slug,
            "org_id": org_id,
        },
    )
    return correlation_id


class TenantContext:
    """
    Immutable organization context for one request.

    Attributes:
        organization_id: resolved organization id
        organization_slug: resolved slug (lowercase)
        organization_name: display name
        user: the authenticated caller
        is_impersonating: True when a super admin acts in support mode
    """

    __slots__ = (
        "_organization_id",
        "_organization_slug",
        "_organization_name",
        "_subscription_plan_id",
        "_user",
        "_is_impersonating",
    )

    def __init__(
        self,
        organization_id: str,
        organization_slug: str,
        user: AuthenticatedUser,
        is_impersonating: bool = False,
        organization_name: Optional[str] = None,
        subscription_plan_id: Optional[str] = None,
    ):
        if not organization_id:
            raise ValueError("organization_id cannot be empty")
        if is_impersonating and not user.is_super_admin:
            raise ValueError("Only super admins can impersonate an organization")
        object.__setattr__(self, "_organization_id", organization_id)
        object.__setattr__(self, "_organization_slug", organization_slug)
        object.__setattr__(self, "_organization_name", organization_name)
        object.__setattr__(self, "_subscription_plan_id", subscription_plan_id)
        object.__setattr__(self, "_user", user)
        object.__setattr__(self, "_is_impersonating", is_impersonating)

    def __setattr__(self, name, value):
        raise AttributeError("TenantContext is immutable")

    @property
    def organization_id(self) -> str:
        return self._organization_id

    @property
    def organization_slug(self) -> str:
        return self._organization_slug

    @property
    def organization_name(self) -> Optional[str]:
        return self._organization_name

    @property
    def subscription_plan_id(self) -> Optional[str]:
        return self._subscription_plan_id

    @property
    def user(self) -> AuthenticatedUser:
        return self._user

    @property
    def user_id(self) -> str:
        return self._user.user_id

    @property
    def is_impersonating(self) -> bool:
        return self._is_impersonating

    def __repr__(self) -> str:
        return (
            f"TenantContext(organization_id={self._organization_id}, "
            f"user_id={self._user.user_id}, impersonating={self._is_impersonating})"
        )


def organization_status_violation(
    organization: Organization,
) -> Optional[tuple[TenantViolationType, TenantIsolationError]]:
    """
    Return the violation that makes an organization unusable, or None.

    Checked in order: inactive or suspended, then subscription expiry.
    """
    status_value = organization.status
    if not organization.is_active or status_value != OrganizationStatus.ACTIVE.value:
        if status_value == OrganizationStatus.SUSPENDED.value:
            return (
                TenantViolationType.ORGANIZATION_SUSPENDED,
                TenantIsolationError(OrgMessages.SUSPENDED, code="organization_suspended"),
            )
        return (
            TenantViolationType.ORGANIZATION_INACTIVE,
            TenantIsolationError(OrgMessages.INACTIVE, code="organization_inactive"),
        )

    if organization.is_expired():
        return (
            TenantViolationType.SUBSCRIPTION_EXPIRED,
            TenantIsolationError(OrgMessages.EXPIRED, code="subscription_expired"),
        )
    return None


def check_organization_usable(request: Request, organization: Organization, user=None) -> None:
    """Reject inactive, suspended and expired organizations."""
    violation = organization_status_violation(organization)
    if violation is None:
        return
    violation_type, error = violation
    _emit_tenant_violation_log(
        request,
        violation_type,
        user=user,
        org_slug=organization.slug,
        org_id=organization.id,
    )
    raise error


async def resolve_tenant_context(
    request: Request,
    org_slug: str,
    db: Session = Depends(get_db_session),
) -> TenantContext:
    """
    Resolve the organization for /api/v1/{org_slug} routes and decide
    whether the caller may act within it.

    Attaches the TenantContext to request.state.tenant_context.
    """
    user = refresh_identity(db, await authenticate(request))
    request.state.user = user

    slug = (org_slug or "").strip().lower()
    if not slug:
        _emit_tenant_violation_log(request, TenantViolationType.MISSING_SLUG, user=user)
        raise ValidationError(OrgMessages.SLUG_REQUIRED, code="organization_slug_required")

    organization = db.query(Organization).filter(Organization.slug == slug).first()
    if organization is None:
        _emit_tenant_violation_log(
            request, TenantViolationType.ORGANIZATION_NOT_FOUND, user=user, org_slug=slug
        )
        raise NotFoundError(OrgMessages.NOT_FOUND, code="organization_not_found")

    check_organization_usable(request, organization, user=user)

    is_impersonating = False
    if user.is_super_admin:
        impersonated_slug = (request.headers.get(IMPERSONATION_HEADER) or "").strip().lower()
        if impersonated_slug != slug:
            _emit_tenant_violation_log(
                request,
                TenantViolationType.SUPER_ADMIN_WITHOUT_IMPERSONATION,
                user=user,
                org_slug=slug,
                org_id=organization.id,
            )
            raise TenantIsolationError(OrgMessages.SUPER_ADMIN_PORTAL, code="super_admin_portal")
        is_impersonating = True
        logger.info(
            "Support mode request",
            extra={
                "user_id": user.user_id,
                "org_id": organization.id,
                "path": request.url.path,
                "method": request.method,
            },
        )
    else:
        if not user.organization_id:
            _emit_tenant_violation_log(
                request, TenantViolationType.NO_ORGANIZATION, user=user, org_slug=slug
            )
            raise TenantIsolationError(OrgMessages.NO_ORGANIZATION, code="no_organization")
        if user.organization_id != organization.id:
            _emit_tenant_violation_log(
                request,
                TenantViolationType.CROSS_TENANT_ACCESS,
                user=user,
                org_slug=slug,
                org_id=organization.id,
            )
            raise TenantIsolationError(OrgMessages.WRONG_ORGANIZATION, code="cross_tenant_access")

    context = TenantContext(
        organization_id=organization.id,
        organization_slug=organization.slug,
        organization_name=organization.name,
        subscription_plan_id=organization.subscription_plan_id,
        user=user,
        is_impersonating=is_impersonating,
    )
    request.state.tenant_context = context
    return context


def get_tenant_context(request: Request) -> TenantContext:
    """
    Get tenant context from request state.

    Raises 400 if resolve_tenant_context has not run for this request.
    """
    context = getattr(request.state, "tenant_context", None)
    if not isinstance(context, TenantContext):
        raise ValidationError(OrgMessages.CONTEXT_REQUIRED, code="organization_context_required")
    return context
