"""Role catalog."""

from __future__ import annotations

from enum import Enum

from permission_matrix.errors import UnknownRoleError


class Role(str, Enum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    MANAGER = "manager"
    MARKETING = "marketing"
    STANDARD_USER = "standard_user"

    @classmethod
    def parse(cls, value: str | Role) -> Role:
        if isinstance(value, Role):
            return value
        try:
            return cls(value)
        except ValueError as exc:
            raise UnknownRoleError(str(value)) from exc


# Ordered from most to least privileged.
ROLE_CATALOG: tuple[Role, ...] = tuple(Role)

PROTECTED_ROLE = Role.SUPER_ADMIN

_MANAGING_ROLES = frozenset({Role.SUPER_ADMIN, Role.ADMIN})


def can_manage_permissions(actor_role: str | Role) -> bool:
    try:
        return Role.parse(actor_role) in _MANAGING_ROLES
    except UnknownRoleError:
        return False


def manageable_roles(actor_role: str | Role) -> list[Role]:
    """Roles whose permissions the actor may edit.

    Super admins see every role, admins see everything except the protected
    role, and everyone else sees nothing.
    """
    if not can_manage_permissions(actor_role):
        return []
    actor = Role.parse(actor_role)
    if actor is Role.SUPER_ADMIN:
        return list(ROLE_CATALOG)
    return [role for role in ROLE_CATALOG if role is not PROTECTED_ROLE]
