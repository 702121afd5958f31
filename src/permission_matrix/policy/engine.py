"""Permission evaluation and administration engine for one tenant."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping

from permission_matrix.audit.models import AuditLogEntry, new_entry
from permission_matrix.audit.recorder import DEFAULT_MAX_ENTRIES, AuditRecorder
from permission_matrix.domain.matrix import (
    FLAG_NAMES,
    PermissionFlags,
    PermissionMatrix,
    PermissionRecord,
)
from permission_matrix.domain.roles import PROTECTED_ROLE, ROLE_CATALOG, Role
from permission_matrix.errors import (
    ProtectedRoleError,
    StoreUnavailableError,
    UnknownModuleError,
    UnknownRoleError,
)
from permission_matrix.policy.defaults import DefaultPolicyGenerator, merge_missing
from permission_matrix.store.base import AuditLogStore, PermissionStore

logger = logging.getLogger(__name__)

ALL_MODULES = "all"

_ACTION_FLAGS = {"view": "visible", "add": "add", "change": "change", "delete": "delete"}

FlagsInput = PermissionFlags | Mapping[str, object]


@dataclass(frozen=True)
class CellChange:
    module: str
    role: Role
    before: PermissionFlags
    after: PermissionFlags

    @property
    def changed(self) -> bool:
        return self.before != self.after


class PermissionEngine:
    """Owns the in-memory matrix of one tenant.

    Queries read the current matrix without locking. Every mutation builds a
    working copy, validates each cell on it, and swaps it in as a whole, so
    readers only ever see complete batches and a rejected cell leaves the
    matrix untouched. Each committed batch is written through to the store;
    its audit entries are recorded only after that write succeeds.
    """

    def __init__(
        self,
        tenant_id: str,
        store: PermissionStore,
        modules: Iterable[str],
        roles: Iterable[Role] = ROLE_CATALOG,
        generator: DefaultPolicyGenerator | None = None,
        audit_store: AuditLogStore | None = None,
        audit_max_entries: int = DEFAULT_MAX_ENTRIES,
    ) -> None:
        self._tenant_id = tenant_id
        self._store = store
        self._modules = tuple(dict.fromkeys(modules))
        self._module_set = frozenset(self._modules)
        self._roles = tuple(Role.parse(role) for role in roles)
        self._role_set = frozenset(self._roles)
        self._generator = generator or DefaultPolicyGenerator()
        self._audit_store = audit_store
        self._audit = AuditRecorder(max_entries=audit_max_entries)
        self._matrix = PermissionMatrix()
        self._pending_audit: list[AuditLogEntry] = []
        self._dirty = False
        self._lock = threading.RLock()
        self._listeners: list[Callable[[], None]] = []

    @property
    def tenant_id(self) -> str:
        return self._tenant_id

    @property
    def modules(self) -> tuple[str, ...]:
        return self._modules

    @property
    def roles(self) -> tuple[Role, ...]:
        return self._roles

    @property
    def audit(self) -> AuditRecorder:
        return self._audit

    @property
    def dirty(self) -> bool:
        """True when in-memory changes have not been durably saved."""
        return self._dirty

    def snapshot(self) -> PermissionMatrix:
        return self._matrix.copy()

    # -- lifecycle -----------------------------------------------------------

    def activate(self) -> int:
        """Load the tenant matrix, backfilling any cells the catalog adds.

        Returns the number of generated cells inserted.
        """
        with self._lock:
            loaded = self._store.load(self._tenant_id)
            defaults = self._generator.generate(self._modules, self._roles)
            if loaded is None:
                matrix = defaults
                inserted = len(defaults)
                logger.info(
                    "Initialized default permissions for tenant %s (%d cells)",
                    self._tenant_id,
                    inserted,
                )
            else:
                matrix = loaded
                inserted = merge_missing(matrix, defaults)
                if inserted:
                    logger.info(
                        "Backfilled %d permission cells for tenant %s",
                        inserted,
                        self._tenant_id,
                    )
            if self._audit_store is not None:
                self._audit.replace(self._audit_store.load_audit(self._tenant_id))
            self._matrix = matrix
            if inserted:
                self._dirty = True
                self._persist()
        self._notify()
        return inserted

    def reload(self) -> None:
        """Discard unsaved in-memory changes and reload from the store."""
        with self._lock:
            self._pending_audit.clear()
            self._dirty = False
            self.activate()

    def save(self) -> None:
        """Persist the matrix and flush audit entries waiting on it."""
        with self._lock:
            self._dirty = True
            self._persist()

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register a callback fired after each committed change.

        Returns a function that removes the callback.
        """
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    # -- queries -------------------------------------------------------------

    def get_permissions(self, module: str, role: str | Role) -> PermissionFlags:
        if module not in self._module_set:
            return PermissionFlags.none()
        try:
            parsed = Role.parse(role)
        except UnknownRoleError:
            return PermissionFlags.none()
        if parsed not in self._role_set:
            return PermissionFlags.none()
        return self._matrix.get(module, parsed).flags

    def can_view(self, module: str, role: str | Role) -> bool:
        return self.get_permissions(module, role).visible

    def can_add(self, module: str, role: str | Role) -> bool:
        return self.get_permissions(module, role).add

    def can_change(self, module: str, role: str | Role) -> bool:
        return self.get_permissions(module, role).change

    def can_delete(self, module: str, role: str | Role) -> bool:
        return self.get_permissions(module, role).delete

    def check(self, module: str, role: str | Role, action: str) -> bool:
        flag = _ACTION_FLAGS.get(action)
        if flag is None:
            return False
        return getattr(self.get_permissions(module, role), flag)

    def has_any_permission(self, module: str, role: str | Role) -> bool:
        return self.get_permissions(module, role).any()

    def role_permissions(self, role: str | Role) -> dict[str, PermissionFlags]:
        return {module: self.get_permissions(module, role) for module in self._modules}

    # -- mutations -----------------------------------------------------------

    def set_cell(
        self,
        module: str,
        role: str | Role,
        flags: FlagsInput,
        actor: str = "system",
    ) -> CellChange:
        """Replace the flags of one cell.

        Hiding a module clears its write flags in the same update. Returns the
        previous and new flags; an unchanged cell is not saved or audited.
        """
        target = self._validate_target(module, role)
        new_flags = _coerce_flags(flags)
        with self._lock:
            working = self._matrix.copy()
            change = self._apply(working, module, target, new_flags)
            self._commit(working, [change], "Updated permissions", actor)
        return change

    def bulk_set(
        self,
        module_selector: str,
        role: str | Role,
        flag_name: str,
        value: bool,
        actor: str = "system",
    ) -> list[CellChange]:
        """Set one flag for one role across ``ALL_MODULES`` or a single module.

        Granting a write flag also makes the module visible; hiding a module
        clears its write flags. One audit entry is written per changed cell.
        """
        if flag_name not in FLAG_NAMES:
            raise ValueError(f"Unknown permission flag: '{flag_name}'")
        target = self._validate_role(role)
        if target is PROTECTED_ROLE:
            raise ProtectedRoleError(target.value)
        if module_selector == ALL_MODULES:
            modules = list(self._modules)
        else:
            self._validate_module(module_selector)
            modules = [module_selector]
        with self._lock:
            working = self._matrix.copy()
            changes = [
                self._apply(
                    working,
                    module,
                    target,
                    working.get(module, target).flags.with_flag(flag_name, value),
                )
                for module in modules
            ]
            self._commit(working, changes, f"Bulk updated '{flag_name}'", actor)
        return [change for change in changes if change.changed]

    def copy_role_permissions(
        self,
        from_role: str | Role,
        to_role: str | Role,
        actor: str = "system",
    ) -> list[CellChange]:
        """Apply every module's flags of ``from_role`` to ``to_role``.

        Copying onto the protected role fails before any cell is written.
        """
        source = self._validate_role(from_role)
        target = self._validate_role(to_role)
        if target is PROTECTED_ROLE:
            logger.warning(
                "Rejected copy of %s permissions onto protected role for tenant %s",
                source.value,
                self._tenant_id,
            )
            raise ProtectedRoleError(target.value)
        with self._lock:
            working = self._matrix.copy()
            changes = [
                self._apply(working, module, target, working.get(module, source).flags)
                for module in self._modules
            ]
            self._commit(
                working, changes, f"Copied permissions from '{source.value}'", actor
            )
        return [change for change in changes if change.changed]

    def reset_role_to_defaults(self, role: str | Role, actor: str = "system") -> list[CellChange]:
        target = self._validate_role(role)
        if target is PROTECTED_ROLE:
            raise ProtectedRoleError(target.value)
        with self._lock:
            working = self._matrix.copy()
            changes = [
                self._apply(
                    working, module, target, self._generator.default_flags(module, target)
                )
                for module in self._modules
            ]
            self._commit(working, changes, "Reset permissions to defaults", actor)
        return [change for change in changes if change.changed]

    # -- internals -----------------------------------------------------------

    def _validate_module(self, module: str) -> None:
        if module not in self._module_set:
            raise UnknownModuleError(module)

    def _validate_role(self, role: str | Role) -> Role:
        parsed = Role.parse(role)
        if parsed not in self._role_set:
            raise UnknownRoleError(parsed.value)
        return parsed

    def _validate_target(self, module: str, role: str | Role) -> Role:
        self._validate_module(module)
        parsed = self._validate_role(role)
        if parsed is PROTECTED_ROLE:
            logger.warning(
                "Rejected change to protected role on %s for tenant %s",
                module,
                self._tenant_id,
            )
            raise ProtectedRoleError(parsed.value)
        return parsed

    @staticmethod
    def _apply(
        working: PermissionMatrix, module: str, role: Role, flags: PermissionFlags
    ) -> CellChange:
        before = working.get(module, role).flags
        record: PermissionRecord = working.set(module, role, flags)
        return CellChange(module=module, role=role, before=before, after=record.flags)

    def _commit(
        self,
        working: PermissionMatrix,
        changes: list[CellChange],
        action: str,
        actor: str,
    ) -> None:
        effective = [change for change in changes if change.changed]
        if not effective:
            return
        self._matrix = working
        self._pending_audit.extend(
            new_entry(
                actor=actor,
                action=action,
                module=change.module,
                role=change.role.value,
                before=change.before,
                after=change.after,
            )
            for change in effective
        )
        self._dirty = True
        logger.debug(
            "%s: %d cells changed for tenant %s by %s",
            action,
            len(effective),
            self._tenant_id,
            actor,
        )
        try:
            self._persist()
        finally:
            self._notify()

    def _persist(self) -> None:
        try:
            self._store.save(self._tenant_id, self._matrix)
        except StoreUnavailableError:
            logger.error(
                "Failed to save permissions for tenant %s; changes are applied in memory only",
                self._tenant_id,
            )
            raise
        self._dirty = False
        if self._pending_audit:
            self._audit.extend(self._pending_audit)
            self._pending_audit.clear()
        if self._audit_store is not None:
            self._audit_store.save_audit(self._tenant_id, self._audit.list())

    def _notify(self) -> None:
        for callback in list(self._listeners):
            try:
                callback()
            except Exception:
                logger.exception("Permission change listener failed")


def _coerce_flags(flags: FlagsInput) -> PermissionFlags:
    if isinstance(flags, PermissionFlags):
        return flags
    return PermissionFlags.from_mapping(flags)
