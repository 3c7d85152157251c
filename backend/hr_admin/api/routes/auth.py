"""
Authentication API routes.

Endpoints:
- POST /api/v1/auth/login    - email/password login, returns tokens and profile
- GET  /api/v1/auth/me       - current profile (permissions, enabled modules)
- POST /api/v1/auth/refresh  - exchange a refresh token for an access token
- POST /api/v1/auth/logout   - stateless; drops the cached profile

Tokens are stateless JWTs; logout does not revoke them.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from hr_admin.api.schemas.auth import LoginRequest, RefreshRequest
from hr_admin.api.schemas.common import success_response
from hr_admin.auth.jwt import AuthenticatedUser
from hr_admin.auth.middleware import authenticate
from hr_admin.constants.messages import AuthMessages
from hr_admin.database.session import get_db_session
from hr_admin.platform.errors import AppError
from hr_admin.services.auth_service import AuthService
from hr_admin.services.permission_cache import get_permission_cache

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post("/login")
async def login(body: LoginRequest, db: Session = Depends(get_db_session)):
    service = AuthService(db)
    try:
        result = service.login(body.email, body.password, body.org_slug)
    except AppError:
        # Failed-attempt counters and lockouts persist even though login fails
        db.commit()
        raise
    db.commit()
    return success_response(result, AuthMessages.LOGIN_SUCCESS)


@router.get("/me")
async def me(
    user: AuthenticatedUser = Depends(authenticate),
    db: Session = Depends(get_db_session),
):
    profile = AuthService(db).get_profile(user.user_id)
    return success_response(profile)


@router.post("/refresh")
async def refresh(body: RefreshRequest, db: Session = Depends(get_db_session)):
    result = AuthService(db).refresh(body.refresh_token)
    return success_response(result, AuthMessages.TOKEN_REFRESHED)


@router.post("/logout")
async def logout(user: AuthenticatedUser = Depends(authenticate)):
    get_permission_cache().invalidate_user(user.user_id)
    logger.info("User logged out", extra={"user_id": user.user_id})
    return success_response(None, AuthMessages.LOGOUT_SUCCESS)
