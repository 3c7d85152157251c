"""
Data-driven Role model with a module x action permission matrix.

- organization_id IS NULL => platform role (super-admin panel)
- organization_id IS NOT NULL => organization-scoped role

Each role owns one RolePermission row per module code. A row carries six
independent boolean flags (read, write, update, delete, approve, export).
Rows with every flag false are not stored.

New organizations are seeded with the system org_admin role, which has
full access to every module in the organization's plan.
"""

from typing import Any, Iterable, Optional

from sqlalchemy import (
    Column,
    String,
    Boolean,
    Text,
    ForeignKey,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from hr_admin.constants.modules import ALL_ACTIONS, ORG_ADMIN_ROLE_CODE, PermissionAction
from hr_admin.db_base import Base
from hr_admin.models.base import TimestampMixin, generate_uuid


def to_strict_bool(value: Any) -> bool:
    """
    Normalize a stored permission flag to bool.

    Only True and the integer 1 count as granted; strings, None and any
    other value are denied.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value == 1
    return False


class Role(Base, TimestampMixin):
    """Platform or organization role."""

    __tablename__ = "roles"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    organization_id = Column(
        String(36),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
        comment="Owning organization. NULL for platform roles.",
    )

    name = Column(String(100), nullable=False, comment="Human-readable role name")

    code = Column(
        String(50),
        nullable=False,
        comment="Machine-friendly identifier, unique per organization",
    )

    description = Column(Text, nullable=True)

    is_system = Column(
        Boolean,
        nullable=False,
        default=False,
        comment="True for seeded roles; prevents modification and deletion",
    )

    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_by = Column(String(36), nullable=True)

    permissions = relationship(
        "RolePermission",
        back_populates="role",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("organization_id", "code", name="uq_roles_organization_code"),
        Index("ix_roles_organization_active", "organization_id", "is_active"),
    )

    def __repr__(self) -> str:
        scope = f"org={self.organization_id}" if self.organization_id else "platform"
        return f"<Role(id={self.id}, code={self.code}, {scope})>"

    @property
    def is_platform_role(self) -> bool:
        return self.organization_id is None

    @property
    def is_org_admin(self) -> bool:
        return self.code == ORG_ADMIN_ROLE_CODE and self.organization_id is not None

    def permission_for(self, module_code: str) -> Optional["RolePermission"]:
        for rp in self.permissions:
            if rp.module_code == module_code:
                return rp
        return None


class RolePermission(Base, TimestampMixin):
    """Six-flag permission grant of a role on one module."""

    __tablename__ = "role_permissions"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    role_id = Column(
        String(36),
        ForeignKey("roles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    module_code = Column(
        String(50),
        nullable=False,
        comment="OrgModuleCode or PlatformModuleCode value",
    )

    can_read = Column(Boolean, nullable=False, default=False)
    can_write = Column(Boolean, nullable=False, default=False)
    can_update = Column(Boolean, nullable=False, default=False)
    can_delete = Column(Boolean, nullable=False, default=False)
    can_approve = Column(Boolean, nullable=False, default=False)
    can_export = Column(Boolean, nullable=False, default=False)

    role = relationship("Role", back_populates="permissions")

    __table_args__ = (
        UniqueConstraint("role_id", "module_code", name="uq_role_permission_module"),
    )

    def __repr__(self) -> str:
        return f"<RolePermission(role_id={self.role_id}, module={self.module_code})>"

    def grants(self, action: PermissionAction) -> bool:
        return to_strict_bool(getattr(self, action.column))

    def grants_any(self, actions: Iterable[PermissionAction] = ALL_ACTIONS) -> bool:
        return any(self.grants(action) for action in actions)

    def flags(self) -> dict[str, bool]:
        """Normalized {action: bool} map."""
        return {action.value: self.grants(action) for action in ALL_ACTIONS}

    def set_flags(self, flags: dict[str, Any]) -> None:
        """Assign flags from an {action: value} map; missing actions become False."""
        for action in ALL_ACTIONS:
            setattr(self, action.column, to_strict_bool(flags.get(action.value, False)))


# ---------------------------------------------------------------------------
# Role templates for seeding new organizations
# ---------------------------------------------------------------------------

ROLE_TEMPLATES: dict[str, dict] = {
    ORG_ADMIN_ROLE_CODE: {
        "name": "Organization Admin",
        "code": ORG_ADMIN_ROLE_CODE,
        "description": "Full access to all modules within the organization",
        "is_system": True,
        "actions": [a.value for a in ALL_ACTIONS],
    },
}


def seed_org_admin_role(
    db_session,
    organization_id: str,
    module_codes: Iterable[str],
) -> Role:
    """
    Seed the system org_admin role for an organization.

    Args:
        db_session: SQLAlchemy session
        organization_id: The organization to seed the role for
        module_codes: Module codes of the organization's plan

    Returns:
        The created Role.
    """
    template = ROLE_TEMPLATES[ORG_ADMIN_ROLE_CODE]

    role = Role(
        organization_id=organization_id,
        name=template["name"],
        code=template["code"],
        description=template["description"],
        is_system=template["is_system"],
    )
    db_session.add(role)
    db_session.flush()  # Get the role.id

    full_access = {action: True for action in template["actions"]}
    for code in module_codes:
        rp = RolePermission(role_id=role.id, module_code=code)
        rp.set_flags(full_access)
        db_session.add(rp)

    db_session.flush()
    return role
