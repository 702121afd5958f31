"""Tenant-scoped access to permission engines."""

from __future__ import annotations

import logging
import threading

from permission_matrix.audit.models import AuditLogEntry
from permission_matrix.audit.recorder import DEFAULT_MAX_ENTRIES
from permission_matrix.domain.roles import Role, can_manage_permissions, manageable_roles
from permission_matrix.errors import PermissionDeniedError
from permission_matrix.policy.defaults import DefaultPolicyGenerator
from permission_matrix.policy.engine import CellChange, FlagsInput, PermissionEngine
from permission_matrix.policy.models import ModuleCatalog
from permission_matrix.store.base import AuditLogStore, PermissionStore

logger = logging.getLogger(__name__)


class PermissionService:
    """Materializes one PermissionEngine per tenant on first access.

    Tenants share nothing but the store; each engine has its own matrix,
    lock and audit log.
    """

    def __init__(
        self,
        store: PermissionStore,
        catalog: ModuleCatalog | None = None,
        audit_store: AuditLogStore | None = None,
        audit_max_entries: int = DEFAULT_MAX_ENTRIES,
    ) -> None:
        self._store = store
        self._catalog = catalog or ModuleCatalog()
        self._audit_store = audit_store
        self._audit_max_entries = audit_max_entries
        self._generator = DefaultPolicyGenerator(self._catalog.defaults)
        self._engines: dict[str, PermissionEngine] = {}
        self._lock = threading.Lock()

    @property
    def catalog(self) -> ModuleCatalog:
        return self._catalog

    def engine(self, tenant_id: str) -> PermissionEngine:
        if not tenant_id:
            raise ValueError("tenant_id is required")
        engine = self._engines.get(tenant_id)
        if engine is not None:
            return engine
        with self._lock:
            engine = self._engines.get(tenant_id)
            if engine is None:
                engine = PermissionEngine(
                    tenant_id,
                    self._store,
                    modules=self._catalog.modules,
                    generator=self._generator,
                    audit_store=self._audit_store,
                    audit_max_entries=self._audit_max_entries,
                )
                engine.activate()
                self._engines[tenant_id] = engine
                logger.info("Activated permission engine for tenant %s", tenant_id)
        return engine

    def audit_log(
        self, tenant_id: str, actor_role: str | Role | None = None
    ) -> list[AuditLogEntry]:
        """Return the tenant's audit entries, most recent first.

        When ``actor_role`` is given, only roles that administer permissions
        may read the log.
        """
        if actor_role is not None:
            self._require_administrator(actor_role)
        return self.engine(tenant_id).audit.list()

    # Administrative entry points check the acting role before delegating.

    def set_cell(
        self,
        tenant_id: str,
        module: str,
        role: str | Role,
        flags: FlagsInput,
        *,
        actor: str,
        actor_role: str | Role,
    ) -> CellChange:
        self._authorize(actor_role, role)
        return self.engine(tenant_id).set_cell(module, role, flags, actor=actor)

    def bulk_set(
        self,
        tenant_id: str,
        module_selector: str,
        role: str | Role,
        flag_name: str,
        value: bool,
        *,
        actor: str,
        actor_role: str | Role,
    ) -> list[CellChange]:
        self._authorize(actor_role, role)
        return self.engine(tenant_id).bulk_set(
            module_selector, role, flag_name, value, actor=actor
        )

    def copy_role_permissions(
        self,
        tenant_id: str,
        from_role: str | Role,
        to_role: str | Role,
        *,
        actor: str,
        actor_role: str | Role,
    ) -> list[CellChange]:
        self._authorize(actor_role, to_role)
        return self.engine(tenant_id).copy_role_permissions(from_role, to_role, actor=actor)

    def reset_role_to_defaults(
        self,
        tenant_id: str,
        role: str | Role,
        *,
        actor: str,
        actor_role: str | Role,
    ) -> list[CellChange]:
        self._authorize(actor_role, role)
        return self.engine(tenant_id).reset_role_to_defaults(role, actor=actor)

    def active_tenants(self) -> list[str]:
        with self._lock:
            return sorted(self._engines)

    def _require_administrator(self, actor_role: str | Role) -> None:
        if not can_manage_permissions(actor_role):
            logger.warning("Denied permission administration to role %s", _role_name(actor_role))
            raise PermissionDeniedError(
                _role_name(actor_role), "may not administer permissions"
            )

    def _authorize(self, actor_role: str | Role, target_role: str | Role) -> None:
        self._require_administrator(actor_role)
        target = Role.parse(target_role)
        if target not in manageable_roles(actor_role):
            logger.warning(
                "Denied %s edits to %s permissions", _role_name(actor_role), target.value
            )
            raise PermissionDeniedError(
                _role_name(actor_role), f"may not edit '{target.value}' permissions"
            )


def _role_name(role: str | Role) -> str:
    return role.value if isinstance(role, Role) else str(role)
