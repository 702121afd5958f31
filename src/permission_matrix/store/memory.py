"""Process-local key-value store."""

from __future__ import annotations

import json
import threading

from permission_matrix.audit.models import AuditLogEntry
from permission_matrix.domain.matrix import PermissionMatrix
from permission_matrix.store.base import audit_key, permissions_key
from permission_matrix.store.codec import (
    audit_from_rows,
    audit_to_rows,
    matrix_from_rows,
    matrix_to_rows,
)


class InMemoryStore:
    """Keeps JSON snapshots per key so callers never share mutable state."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> object | None:
        with self._lock:
            raw = self._data.get(key)
        return None if raw is None else json.loads(raw)

    def set(self, key: str, value: object) -> None:
        encoded = json.dumps(value)
        with self._lock:
            self._data[key] = encoded

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._data)

    def load(self, tenant_id: str) -> PermissionMatrix | None:
        rows = self.get(permissions_key(tenant_id))
        if rows is None:
            return None
        return matrix_from_rows(rows)

    def save(self, tenant_id: str, matrix: PermissionMatrix) -> None:
        self.set(permissions_key(tenant_id), matrix_to_rows(matrix))

    def load_audit(self, tenant_id: str) -> list[AuditLogEntry]:
        return audit_from_rows(self.get(audit_key(tenant_id)))

    def save_audit(self, tenant_id: str, entries: list[AuditLogEntry]) -> None:
        self.set(audit_key(tenant_id), audit_to_rows(entries))
