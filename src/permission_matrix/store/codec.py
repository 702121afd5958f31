"""Row encoding for key-value persisted matrices and audit logs."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from permission_matrix.audit.models import AuditLogEntry
from permission_matrix.domain.matrix import PermissionMatrix, PermissionRecord
from permission_matrix.domain.roles import Role
from permission_matrix.errors import StoreUnavailableError

logger = logging.getLogger(__name__)


class PermissionRow(BaseModel):
    model_config = ConfigDict(extra="ignore")

    module: str
    role: str
    visible: bool = False
    add: bool = False
    change: bool = False
    delete: bool = False

    @field_validator("visible", "add", "change", "delete", mode="before")
    @classmethod
    def _coerce_truthy(cls, v: Any) -> bool:
        return bool(v)


class AuditRow(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    timestamp: str
    actor: str = ""
    action: str = ""
    module: str = ""
    role: str = ""
    changes: str = ""


def matrix_to_rows(matrix: PermissionMatrix) -> list[dict[str, object]]:
    return [
        {"module": record.module, "role": record.role.value, **record.flags.as_dict()}
        for record in matrix
    ]


def matrix_from_rows(rows: object) -> PermissionMatrix:
    """Decode persisted rows into a matrix.

    Rows without a module or role are skipped, as are roles outside the
    catalog. When a key appears twice the later row wins.
    """
    if not isinstance(rows, list):
        raise StoreUnavailableError("Persisted permissions are not a list of rows")
    decoded: dict[tuple[str, Role], PermissionRecord] = {}
    skipped = 0
    for raw in rows:
        if not isinstance(raw, dict) or not raw.get("module") or not raw.get("role"):
            skipped += 1
            continue
        try:
            row = PermissionRow.model_validate(raw)
        except ValidationError as exc:
            raise StoreUnavailableError(f"Invalid persisted permission row: {exc}") from exc
        try:
            role = Role(row.role)
        except ValueError:
            skipped += 1
            continue
        record = PermissionRecord(row.module, role, row.visible, row.add, row.change, row.delete)
        decoded[record.key] = record
    if skipped:
        logger.warning("Skipped %d persisted permission rows", skipped)
    return PermissionMatrix(decoded.values())


def audit_to_rows(entries: list[AuditLogEntry]) -> list[dict[str, str]]:
    return [entry.as_dict() for entry in entries]


def audit_from_rows(rows: object) -> list[AuditLogEntry]:
    if rows is None:
        return []
    if not isinstance(rows, list):
        raise StoreUnavailableError("Persisted audit log is not a list of entries")
    try:
        return [AuditLogEntry(**AuditRow.model_validate(raw).model_dump()) for raw in rows]
    except ValidationError as exc:
        raise StoreUnavailableError(f"Invalid persisted audit entry: {exc}") from exc
