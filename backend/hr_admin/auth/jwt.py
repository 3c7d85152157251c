"""
JWT claims handling for HR Admin tokens.

This module provides:
- Pydantic model for the token claims
- The AuthenticatedUser view attached to request.state.user

JWT Claims Used:
- sub: user id
- email: user email (lowercase)
- organization_id: owning organization (absent for super admins)
- role_id: assigned role (absent when the user has no role)
- is_super_admin: platform super admin flag
- type: "access" or "refresh"
- iat / exp: issued-at and expiry timestamps
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class TokenClaims(BaseModel):
    """Pydantic model for decoded HR Admin JWT claims."""

    model_config = ConfigDict(extra="ignore")

    sub: str = Field(..., description="User ID")
    email: str = Field(..., description="User email")
    organization_id: Optional[str] = Field(None, description="Organization ID, NULL for super admins")
    role_id: Optional[str] = Field(None, description="Role ID, NULL when no role is assigned")
    is_super_admin: bool = Field(False, description="Platform super admin flag")
    type: TokenType = Field(TokenType.ACCESS, description="Token type")
    iat: int = Field(..., description="Issued at timestamp (Unix)")
    exp: int = Field(..., description="Expiration timestamp (Unix)")


class AuthenticatedUser(BaseModel):
    """
    Immutable identity of the caller, taken from a verified access token.

    Authorization never trusts anything else about the caller.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    email: str
    organization_id: Optional[str] = None
    role_id: Optional[str] = None
    is_super_admin: bool = False

    @classmethod
    def from_claims(cls, claims: TokenClaims) -> "AuthenticatedUser":
        return cls(
            user_id=claims.sub,
            email=claims.email,
            organization_id=claims.organization_id,
            role_id=claims.role_id,
            is_super_admin=claims.is_super_admin,
        )
