"""Default permission generation.

Each role's defaults are described by module-set memberships rather than
per-module branches:

- ``super_admin``: everything, always.
- ``admin``: everything except deleting ``admin_undeletable`` modules
  (``users`` by default, so one admin cannot remove another).
- ``manager``: sees everything, cannot add/change ``manager_restricted``
  modules, deletes only ``manager_deletable`` modules.
- ``marketing``: hidden from ``marketing_hidden``, writes only
  ``marketing_owned``, deletes only ``marketing_deletable``.
- ``standard_user``: hidden from ``standard_hidden``, writes only
  ``standard_personal``, never deletes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from permission_matrix.domain.matrix import PermissionFlags, PermissionMatrix, PermissionRecord
from permission_matrix.domain.roles import ROLE_CATALOG, Role
from permission_matrix.policy.models import DefaultPolicySets


@dataclass(frozen=True)
class RoleDefaults:
    """Set-driven default rule for one role.

    ``None`` for ``writable``/``deletable`` means "every module"; the
    ``read_only``/``undeletable`` sets then carve out exceptions.
    """

    hidden: frozenset[str] = frozenset()
    writable: frozenset[str] | None = None
    read_only: frozenset[str] = frozenset()
    deletable: frozenset[str] | None = None
    undeletable: frozenset[str] = frozenset()

    def flags_for(self, module: str) -> PermissionFlags:
        writable = (self.writable is None or module in self.writable) and (
            module not in self.read_only
        )
        deletable = (self.deletable is None or module in self.deletable) and (
            module not in self.undeletable
        )
        return PermissionFlags(
            visible=module not in self.hidden,
            add=writable,
            change=writable,
            delete=deletable,
        ).cascaded()


def build_role_rules(sets: DefaultPolicySets) -> dict[Role, RoleDefaults]:
    return {
        Role.SUPER_ADMIN: RoleDefaults(),
        Role.ADMIN: RoleDefaults(undeletable=frozenset(sets.admin_undeletable)),
        Role.MANAGER: RoleDefaults(
            read_only=frozenset(sets.manager_restricted),
            deletable=frozenset(sets.manager_deletable),
        ),
        Role.MARKETING: RoleDefaults(
            hidden=frozenset(sets.marketing_hidden),
            writable=frozenset(sets.marketing_owned),
            deletable=frozenset(sets.marketing_deletable),
        ),
        Role.STANDARD_USER: RoleDefaults(
            hidden=frozenset(sets.standard_hidden),
            writable=frozenset(sets.standard_personal),
            deletable=frozenset(),
        ),
    }


class DefaultPolicyGenerator:
    def __init__(self, sets: DefaultPolicySets | None = None) -> None:
        self._rules = build_role_rules(sets or DefaultPolicySets())

    def default_flags(self, module: str, role: str | Role) -> PermissionFlags:
        return self._rules[Role.parse(role)].flags_for(module)

    def generate(
        self,
        modules: Iterable[str],
        roles: Iterable[Role] = ROLE_CATALOG,
    ) -> PermissionMatrix:
        role_list = [Role.parse(role) for role in roles]
        return PermissionMatrix(
            PermissionRecord.build(module, role, self.default_flags(module, role))
            for module in dict.fromkeys(modules)
            for role in role_list
        )


def generate(
    modules: Iterable[str],
    roles: Iterable[Role] = ROLE_CATALOG,
    sets: DefaultPolicySets | None = None,
) -> PermissionMatrix:
    """Produce a complete default matrix for the given catalogs."""
    return DefaultPolicyGenerator(sets).generate(modules, roles)


def merge_missing(target: PermissionMatrix, defaults: PermissionMatrix) -> int:
    """Insert the cells of ``defaults`` that ``target`` lacks.

    Existing cells are left untouched even where the generated default
    differs, so administrator customizations survive catalog growth.
    Returns the number of inserted cells.
    """
    return target.fill_missing(defaults)
