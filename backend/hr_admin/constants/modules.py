"""
Closed registries of module codes and permission actions.

IMPORTANT: This is the single source of truth for module codes.
Every permission check references these enums; a code that is not a
member of a registry can never be granted, so a typo fails closed.

Module categories:
- Org modules: feature areas of the organization portal. Core modules are
  always enabled; non-core modules are toggled per organization.
- Platform modules: areas of the super-admin panel.
"""

from enum import Enum
from typing import FrozenSet, Union

from hr_admin.platform.errors import NotFoundError


class OrgModuleCode(str, Enum):
    """Organization portal modules."""
    # Core (always enabled)
    DASHBOARD = "dashboard"
    EMPLOYEES = "employees"
    ATTENDANCE = "attendance"
    LEAVE = "leave"
    MASTER_DATA = "master_data"
    ROLES = "roles"
    USERS = "users"
    REPORTS = "reports"
    SETTINGS = "settings"

    # Optional (enabled per organization)
    RECRUITMENT = "recruitment"
    PAYROLL = "payroll"
    PERFORMANCE = "performance"
    ASSETS = "assets"


class PlatformModuleCode(str, Enum):
    """Super-admin panel modules."""
    ORGANIZATIONS = "organizations"
    ACCOUNTS = "accounts"
    PLATFORM_ROLES = "platform_roles"
    SUBSCRIPTION_PLANS = "subscription_plans"
    SYSTEM_MODULES = "system_modules"
    SYSTEM_SETTINGS = "system_settings"
    AUDIT_LOGS = "audit_logs"
    ANALYTICS = "analytics"
    MASTER_DATA = "master_data"


ModuleCode = Union[OrgModuleCode, PlatformModuleCode]


CORE_ORG_MODULES: FrozenSet[OrgModuleCode] = frozenset({
    OrgModuleCode.DASHBOARD,
    OrgModuleCode.EMPLOYEES,
    OrgModuleCode.ATTENDANCE,
    OrgModuleCode.LEAVE,
    OrgModuleCode.MASTER_DATA,
    OrgModuleCode.ROLES,
    OrgModuleCode.USERS,
    OrgModuleCode.REPORTS,
    OrgModuleCode.SETTINGS,
})


class PermissionAction(str, Enum):
    """The six independent actions of a RolePermission row."""
    READ = "read"
    WRITE = "write"
    UPDATE = "update"
    DELETE = "delete"
    APPROVE = "approve"
    EXPORT = "export"

    @property
    def column(self) -> str:
        """RolePermission column holding this action's flag."""
        return f"can_{self.value}"


ALL_ACTIONS: tuple[PermissionAction, ...] = tuple(PermissionAction)

# Support mode never deletes or exports, whatever the platform role allows
IMPERSONATION_RESTRICTED_ACTIONS: FrozenSet[PermissionAction] = frozenset({
    PermissionAction.DELETE,
    PermissionAction.EXPORT,
})


def is_core_module(code: OrgModuleCode) -> bool:
    return code in CORE_ORG_MODULES


def parse_org_module_code(value: str) -> OrgModuleCode:
    """
    Validate a free-text module code against the org registry.

    Raises:
        NotFoundError: if the code is not a registered org module
    """
    try:
        return OrgModuleCode(value)
    except ValueError:
        raise NotFoundError(f"Module {value} not found", code="module_not_found")


def parse_module_code(value: str) -> ModuleCode:
    """
    Validate a module code against both registries.

    Org modules win when a code exists in both (master_data): the
    stored RolePermission row is keyed by the code string alone.
    """
    try:
        return OrgModuleCode(value)
    except ValueError:
        pass
    try:
        return PlatformModuleCode(value)
    except ValueError:
        raise NotFoundError(f"Module {value} not found", code="module_not_found")


class MasterDataResource(str, Enum):
    """Resource kinds served by the generic master-data CRUD capability."""
    # Organization scoped
    DEPARTMENTS = "departments"
    DESIGNATIONS = "designations"
    BRANCHES = "branches"
    EMPLOYMENT_TYPES = "employment_types"
    LEAVE_TYPES = "leave_types"
    HOLIDAYS = "holidays"

    # Platform wide
    COUNTRIES = "countries"
    GENDERS = "genders"
    BLOOD_GROUPS = "blood_groups"
    DOCUMENT_TYPES = "document_types"


PLATFORM_MASTER_DATA: FrozenSet[MasterDataResource] = frozenset({
    MasterDataResource.COUNTRIES,
    MasterDataResource.GENDERS,
    MasterDataResource.BLOOD_GROUPS,
    MasterDataResource.DOCUMENT_TYPES,
})

ORG_MASTER_DATA: FrozenSet[MasterDataResource] = frozenset(
    r for r in MasterDataResource if r not in PLATFORM_MASTER_DATA
)


class OrganizationStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"


# Slugs that collide with fixed /api/v1 path segments
RESERVED_ORG_SLUGS: FrozenSet[str] = frozenset({"auth", "superadmin", "health"})

ORG_ADMIN_ROLE_CODE = "org_admin"
