"""
Bearer-token authentication dependencies.

Usage:
    router = APIRouter(dependencies=[Depends(authenticate)])

    @router.get("/me")
    async def me(user: AuthenticatedUser = Depends(get_current_user)):
        ...

authenticate verifies the access token and attaches the decoded identity
to request.state.user. Missing or invalid tokens answer 401.
"""

import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from hr_admin.auth.jwt import AuthenticatedUser, TokenType
from hr_admin.auth.token_service import decode_token
from hr_admin.constants.messages import AuthMessages
from hr_admin.database.session import get_db_session
from hr_admin.models.user import User
from hr_admin.platform.errors import AuthenticationError, PermissionDeniedError

logger = logging.getLogger(__name__)

# Security scheme for extracting Bearer token
security = HTTPBearer(auto_error=False)


async def authenticate(request: Request) -> AuthenticatedUser:
    """Verify the bearer token and attach the caller to request.state.user."""
    existing = getattr(request.state, "user", None)
    if isinstance(existing, AuthenticatedUser):
        return existing

    credentials: Optional[HTTPAuthorizationCredentials] = await security(request)
    if not credentials or not credentials.credentials:
        logger.warning(
            "Request missing authorization token",
            extra={"path": request.url.path, "method": request.method},
        )
        raise AuthenticationError(AuthMessages.UNAUTHORIZED)

    claims = decode_token(credentials.credentials, TokenType.ACCESS)
    user = AuthenticatedUser.from_claims(claims)
    request.state.user = user
    return user


def get_current_user(request: Request) -> AuthenticatedUser:
    """
    Get the authenticated caller from request state.

    Raises 401 if authenticate has not run for this request.
    """
    user = getattr(request.state, "user", None)
    if not isinstance(user, AuthenticatedUser):
        raise AuthenticationError(AuthMessages.UNAUTHORIZED)
    return user


async def require_super_admin(
    request: Request,
    db: Session = Depends(get_db_session),
) -> AuthenticatedUser:
    """
    Authenticate and require the platform super admin flag.

    The flag is read from the stored account, not the token, so a demoted
    super admin loses platform access immediately.
    """
    user = refresh_identity(db, await authenticate(request))
    request.state.user = user
    if not user.is_super_admin:
        logger.warning(
            "Non super admin attempted platform route",
            extra={"user_id": user.user_id, "path": request.url.path},
        )
        raise PermissionDeniedError(AuthMessages.SUPER_ADMIN_REQUIRED, code="super_admin_required")
    return user


def refresh_identity(db, user: AuthenticatedUser) -> AuthenticatedUser:
    """
    Re-read the caller's account so role and status changes apply to
    tokens issued before them.

    Raises 401 if the account was deleted or deactivated.
    """
    row = db.query(User).filter(User.id == user.user_id).first()
    if row is None or not row.is_active:
        logger.warning("Token presented for missing or inactive user", extra={"user_id": user.user_id})
        raise AuthenticationError(AuthMessages.UNAUTHORIZED, code="account_inactive")

    current = AuthenticatedUser(
        user_id=row.id,
        email=row.email,
        organization_id=row.organization_id,
        role_id=row.role_id,
        is_super_admin=bool(row.is_super_admin),
    )
    if current != user:
        logger.info("Token claims differ from stored account", extra={"user_id": row.id})
    return current
