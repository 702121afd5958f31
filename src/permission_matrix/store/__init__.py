"""Persistence backends for tenant permission matrices and audit logs."""

from permission_matrix.store.base import AuditLogStore, PermissionStore
from permission_matrix.store.memory import InMemoryStore
from permission_matrix.store.sqlite import SqliteKeyValueStore

__all__ = ["AuditLogStore", "InMemoryStore", "PermissionStore", "SqliteKeyValueStore"]
