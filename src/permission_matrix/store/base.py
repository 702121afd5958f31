"""Persistence boundaries consumed by the permission engine."""

from __future__ import annotations

from typing import Protocol

from permission_matrix.audit.models import AuditLogEntry
from permission_matrix.domain.matrix import PermissionMatrix


class PermissionStore(Protocol):
    def load(self, tenant_id: str) -> PermissionMatrix | None:
        """Return the persisted matrix, or None when the tenant has none yet."""

    def save(self, tenant_id: str, matrix: PermissionMatrix) -> None: ...


class AuditLogStore(Protocol):
    def load_audit(self, tenant_id: str) -> list[AuditLogEntry]: ...

    def save_audit(self, tenant_id: str, entries: list[AuditLogEntry]) -> None: ...


def permissions_key(tenant_id: str) -> str:
    return f"permissions:{tenant_id}"


def audit_key(tenant_id: str) -> str:
    return f"audit_logs:{tenant_id}"
