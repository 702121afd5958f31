"""Permission records and the per-tenant matrix that holds them."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Iterable, Iterator, Mapping

from permission_matrix.domain.roles import PROTECTED_ROLE, Role
from permission_matrix.errors import ProtectedRoleError

FLAG_NAMES: tuple[str, ...] = ("visible", "add", "change", "delete")
WRITE_FLAGS: frozenset[str] = frozenset({"add", "change", "delete"})


@dataclass(frozen=True)
class PermissionFlags:
    visible: bool = False
    add: bool = False
    change: bool = False
    delete: bool = False

    @classmethod
    def all(cls) -> PermissionFlags:
        return cls(visible=True, add=True, change=True, delete=True)

    @classmethod
    def none(cls) -> PermissionFlags:
        return cls()

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> PermissionFlags:
        unknown = set(data) - set(FLAG_NAMES)
        if unknown:
            raise ValueError(f"Unknown permission flags: {', '.join(sorted(unknown))}")
        for name, value in data.items():
            _require_bool(name, value)
        return cls(**{name: data.get(name, False) for name in FLAG_NAMES})

    def cascaded(self) -> PermissionFlags:
        """Return flags with write capabilities cleared when not visible."""
        if self.visible:
            return self
        return PermissionFlags.none()

    def with_flag(self, name: str, value: bool) -> PermissionFlags:
        """Apply a single flag change the way the admin table toggles do.

        Hiding a module clears every write flag; granting a write flag makes
        the module visible.
        """
        if name not in FLAG_NAMES:
            raise ValueError(f"Unknown permission flag: '{name}'")
        _require_bool(name, value)
        updated = replace(self, **{name: value})
        if value and name in WRITE_FLAGS:
            updated = replace(updated, visible=True)
        return updated.cascaded()

    def any(self) -> bool:
        return self.visible or self.add or self.change or self.delete

    def changes_from(self, before: PermissionFlags) -> list[tuple[str, bool, bool]]:
        return [
            (name, getattr(before, name), getattr(self, name))
            for name in FLAG_NAMES
            if getattr(before, name) != getattr(self, name)
        ]

    def as_dict(self) -> dict[str, bool]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class PermissionRecord:
    module: str
    role: Role
    visible: bool = False
    add: bool = False
    change: bool = False
    delete: bool = False

    @classmethod
    def build(cls, module: str, role: Role, flags: PermissionFlags) -> PermissionRecord:
        return cls(module, role, **flags.as_dict())

    @property
    def key(self) -> tuple[str, Role]:
        return (self.module, self.role)

    @property
    def flags(self) -> PermissionFlags:
        return PermissionFlags(self.visible, self.add, self.change, self.delete)


_CellKey = tuple[str, Role]


class PermissionMatrix:
    """Mapping of ``(module, role)`` to a single PermissionRecord.

    Every stored record satisfies the visibility cascade, and records of the
    protected role always read as fully granted.
    """

    def __init__(self, records: Iterable[PermissionRecord] = ()) -> None:
        self._cells: dict[_CellKey, PermissionRecord] = {}
        for record in records:
            if record.key in self._cells:
                raise ValueError(
                    f"Duplicate permission record for {record.module}/{record.role.value}"
                )
            self._cells[record.key] = _normalize(record)

    def get(self, module: str, role: str | Role) -> PermissionRecord:
        """Return the stored record, or an all-false record for an absent pair.

        Raises UnknownRoleError for names outside the role catalog; callers
        answering access queries filter those first.
        """
        parsed = Role.parse(role)
        if parsed is PROTECTED_ROLE:
            return PermissionRecord.build(module, parsed, PermissionFlags.all())
        record = self._cells.get((module, parsed))
        if record is None:
            return PermissionRecord(module, parsed)
        return record

    def set(self, module: str, role: str | Role, flags: PermissionFlags) -> PermissionRecord:
        parsed = Role.parse(role)
        if parsed is PROTECTED_ROLE:
            raise ProtectedRoleError(parsed.value)
        record = PermissionRecord.build(module, parsed, flags.cascaded())
        self._cells[record.key] = record
        return record

    def insert_missing(self, record: PermissionRecord) -> bool:
        """Insert ``record`` only if its key is absent. Returns True on insert."""
        if record.key in self._cells:
            return False
        self._cells[record.key] = _normalize(record)
        return True

    def fill_missing(self, defaults: PermissionMatrix) -> int:
        """Copy every record of ``defaults`` whose key is absent here."""
        return sum(1 for record in defaults if self.insert_missing(record))

    def contains(self, module: str, role: Role) -> bool:
        return (module, role) in self._cells

    def missing_keys(self, modules: Iterable[str], roles: Iterable[Role]) -> list[_CellKey]:
        role_list = list(roles)
        return [
            (module, role)
            for module in modules
            for role in role_list
            if (module, role) not in self._cells
        ]

    def copy(self) -> PermissionMatrix:
        clone = PermissionMatrix()
        clone._cells = dict(self._cells)
        return clone

    def records(self) -> list[PermissionRecord]:
        return list(self._cells.values())

    def __iter__(self) -> Iterator[PermissionRecord]:
        return iter(list(self._cells.values()))

    def __len__(self) -> int:
        return len(self._cells)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PermissionMatrix):
            return NotImplemented
        return self._cells == other._cells


def _normalize(record: PermissionRecord) -> PermissionRecord:
    if record.role is PROTECTED_ROLE:
        return PermissionRecord.build(record.module, record.role, PermissionFlags.all())
    cascaded = record.flags.cascaded()
    if cascaded == record.flags:
        return record
    return PermissionRecord.build(record.module, record.role, cascaded)


def _require_bool(name: str, value: object) -> None:
    # Strings such as "false" are truthy; never coerce them into a grant.
    if not isinstance(value, bool):
        raise ValueError(
            f"Permission flag '{name}' must be a bool, got {type(value).__name__}"
        )
