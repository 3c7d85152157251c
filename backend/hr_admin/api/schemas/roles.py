"""
Pydantic schemas for roles and the permission matrix.

Permission entries accept flags as `read`, `can_read` or `canRead`.
Flags are normalized to strict booleans by the service: only true and 1
grant, so a string "true" is not a grant.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RoleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    code: Optional[str] = Field(None, max_length=50, description="Derived from name when omitted")
    description: Optional[str] = None


class RoleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class PermissionEntry(BaseModel):
    """One module row of the matrix; flag keys pass through unvalidated."""

    model_config = ConfigDict(extra="allow")

    module_code: str = Field(..., min_length=1, max_length=50)


class PermissionsReplace(BaseModel):
    permissions: List[PermissionEntry]


class ModulePermissionUpdate(BaseModel):
    """Partial flag update for one module; absent flags keep their value."""

    model_config = ConfigDict(extra="allow")
