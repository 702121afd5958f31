"""SQLite-backed key-value store for permission matrices and audit logs."""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from pathlib import Path

from permission_matrix.audit.models import AuditLogEntry
from permission_matrix.domain.matrix import PermissionMatrix
from permission_matrix.errors import StoreUnavailableError
from permission_matrix.store.base import audit_key, permissions_key
from permission_matrix.store.codec import (
    audit_from_rows,
    audit_to_rows,
    matrix_from_rows,
    matrix_to_rows,
)

logger = logging.getLogger(__name__)


class SqliteKeyValueStore:
    def __init__(self, path: str, wal: bool = True) -> None:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._closed = False
        if wal:
            self._conn.execute("PRAGMA journal_mode=WAL")
        self._init_schema()

    def _init_schema(self) -> None:
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
            );
            """
        )
        self._conn.commit()

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._conn.close()
            self._closed = True

    def fetch_one(self, query: str, params: tuple[object, ...]) -> sqlite3.Row | None:
        with self._lock:
            cur = self._conn.execute(query, params)
            return cur.fetchone()

    def get(self, key: str) -> object | None:
        try:
            row = self.fetch_one("SELECT value FROM kv_store WHERE key = ?", (key,))
        except sqlite3.Error as exc:
            logger.error("Failed to read key %s: %s", key, exc)
            raise StoreUnavailableError(f"Failed to read '{key}': {exc}") from exc
        if row is None:
            return None
        try:
            return json.loads(row["value"])
        except json.JSONDecodeError as exc:
            raise StoreUnavailableError(f"Stored value for '{key}' is not valid JSON") from exc

    def set(self, key: str, value: object) -> None:
        encoded = json.dumps(value, ensure_ascii=True)
        try:
            with self._lock:
                self._conn.execute(
                    """
                    INSERT INTO kv_store (key, value, updated_at)
                    VALUES (?, ?, strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    (key, encoded),
                )
                self._conn.commit()
        except sqlite3.Error as exc:
            logger.error("Failed to write key %s: %s", key, exc)
            raise StoreUnavailableError(f"Failed to write '{key}': {exc}") from exc

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
