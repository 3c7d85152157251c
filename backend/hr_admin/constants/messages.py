"""
User-facing messages shared by the API and the client mirror.

Keep these stable: the admin console matches on several of them.
"""


class AuthMessages:
    UNAUTHORIZED = "Unauthorized access"
    TOKEN_INVALID = "Invalid token"
    INVALID_CREDENTIALS = "Invalid email or password"
    ACCOUNT_LOCKED = "Account is temporarily locked due to too many failed login attempts"
    ACCOUNT_INACTIVE = "Account is inactive"
    SUPER_ADMIN_REQUIRED = "Super admin access required"
    SUPER_ADMIN_ORG_LOGIN = "Super admins must sign in through the admin panel"
    NO_ORGANIZATION = "User does not belong to any organization"
    WRONG_ORGANIZATION_LOGIN = "You do not belong to this organization"
    LOGIN_SUCCESS = "Login successful"
    LOGOUT_SUCCESS = "Logout successful"
    TOKEN_REFRESHED = "Token refreshed successfully"


class OrgMessages:
    SLUG_REQUIRED = "Organization slug is required"
    NOT_FOUND = "Organization not found"
    INACTIVE = "Organization is inactive"
    SUSPENDED = "Organization subscription is suspended"
    EXPIRED = "Organization subscription has expired"
    CONTEXT_REQUIRED = "Organization context is required"
    SUPER_ADMIN_PORTAL = (
        "Super admins cannot access organization portal. "
        "Please use the admin panel at /superadmin"
    )
    NO_ORGANIZATION = "User does not belong to any organization"
    WRONG_ORGANIZATION = "You do not have access to this organization"


class PermissionMessages:
    DENIED = "You do not have permission to perform this action"
    DENIED_ANY = "You do not have permission to access this resource"
    NO_ROLE = "You do not have a role assigned"
    SUPER_ADMIN_ORG_ROUTE = "Super admins cannot access organization routes"
    SUPPORT_MODE_RESTRICTED = "Delete and export operations are restricted in support mode"
    CHECK_FAILED = "Permission check failed"

    @staticmethod
    def module_not_found(code: str) -> str:
        return f"Module {code} not found"

    @staticmethod
    def module_disabled(code: str) -> str:
        return f"The {code} module is not enabled for your organization"


class RoleMessages:
    NOT_FOUND = "Role not found"
    CODE_EXISTS = "A role with this code already exists"
    SYSTEM_UPDATE = "System roles cannot be modified"
    SYSTEM_DELETE = "System roles cannot be deleted"
    HAS_USERS = "Cannot delete role with assigned users"
    ORG_ADMIN_PERMISSIONS = "Organization admin permissions cannot be modified"
    ROLE_NOT_IN_ORGANIZATION = "Role does not belong to this organization"
