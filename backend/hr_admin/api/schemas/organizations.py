"""
Pydantic schemas for organizations, subscription plans and module toggles.

Slug format and reserved slugs are validated by the organization service
so the same rules apply to every caller.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


# =============================================================================
# Organizations
# =============================================================================

class OrganizationProfileUpdate(BaseModel):
    """Contact details editable from the organization portal."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)
    address: Optional[str] = None
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    country: Optional[str] = Field(None, max_length=100)


class OrganizationCreate(OrganizationProfileUpdate):
    name: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=1, max_length=100)
    subscription_plan_id: str
    subscription_start_date: Optional[datetime] = None
    subscription_expiry_date: Optional[datetime] = None
    max_users: Optional[int] = Field(None, ge=1)
    max_employees: Optional[int] = Field(None, ge=1)

    admin_email: str = Field(..., max_length=255)
    admin_password: str = Field(..., min_length=1, max_length=255)
    admin_first_name: Optional[str] = Field(None, max_length=100)
    admin_last_name: Optional[str] = Field(None, max_length=100)


class OrganizationUpdate(OrganizationProfileUpdate):
    subscription_plan_id: Optional[str] = None
    subscription_start_date: Optional[datetime] = None
    subscription_expiry_date: Optional[datetime] = None
    max_users: Optional[int] = Field(None, ge=1)
    max_employees: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None
    status: Optional[str] = Field(None, description="active | suspended | cancelled")


# =============================================================================
# Subscription plans
# =============================================================================

class PlanCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    code: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = None
    price_monthly: Optional[Decimal] = Field(None, ge=0)
    price_yearly: Optional[Decimal] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    max_users: Optional[int] = Field(None, ge=1)
    max_employees: Optional[int] = Field(None, ge=1)
    display_order: Optional[int] = None
    module_ids: List[str] = Field(default_factory=list, description="Optional modules; core modules are always added")


class PlanUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    price_monthly: Optional[Decimal] = Field(None, ge=0)
    price_yearly: Optional[Decimal] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    max_users: Optional[int] = Field(None, ge=1)
    max_employees: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None
    display_order: Optional[int] = None


class PlanModulesUpdate(BaseModel):
    module_ids: List[str] = Field(..., description="Complete module set of the plan")


# =============================================================================
# Organization module toggles
# =============================================================================

class ModuleToggleRequest(BaseModel):
    org_module_id: str
    is_enabled: bool


class OrganizationModulesUpdate(BaseModel):
    modules: List[ModuleToggleRequest] = Field(..., min_length=1)
