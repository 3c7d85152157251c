"""
Token issuing and verification (HS256, PyJWT).

Access tokens authenticate API calls; refresh tokens are exchanged for a
new access token at POST /api/v1/auth/refresh. Both are stateless.
"""

import logging
from datetime import datetime, timedelta, timezone

import jwt
from pydantic import ValidationError as PydanticValidationError

from hr_admin.auth.jwt import TokenClaims, TokenType
from hr_admin.config.settings import get_settings
from hr_admin.constants.messages import AuthMessages
from hr_admin.platform.errors import AuthenticationError

logger = logging.getLogger(__name__)


def _encode(user, token_type: TokenType, lifetime: timedelta) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user.id,
        "email": user.email,
        "organization_id": user.organization_id,
        "role_id": user.role_id,
        "is_super_admin": bool(user.is_super_admin),
        "type": token_type.value,
        "iat": now,
        "exp": now + lifetime,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def issue_access_token(user) -> str:
    """Create an access token for a User row."""
    days = get_settings().jwt_access_expires_days
    return _encode(user, TokenType.ACCESS, timedelta(days=days))


def issue_refresh_token(user) -> str:
    """Create a long-lived refresh token for a User row."""
    days = get_settings().jwt_refresh_expires_days
    return _encode(user, TokenType.REFRESH, timedelta(days=days))


def decode_token(token: str, expected_type: TokenType = TokenType.ACCESS) -> TokenClaims:
    """
    Verify a token's signature and expiry and return its claims.

    Raises:
        AuthenticationError: token is expired, malformed, forged or of the wrong type
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp", "iat"]},
        )
        claims = TokenClaims.model_validate(payload)
    except jwt.ExpiredSignatureError:
        logger.info("Expired token presented", extra={"expected_type": expected_type.value})
        raise AuthenticationError(AuthMessages.TOKEN_INVALID, code="token_expired")
    except (jwt.InvalidTokenError, PydanticValidationError) as e:
        logger.warning("Invalid token presented", extra={"error": str(e)})
        raise AuthenticationError(AuthMessages.TOKEN_INVALID, code="token_invalid")

    if claims.type != expected_type:
        raise AuthenticationError(AuthMessages.TOKEN_INVALID, code="token_invalid")
    return claims
