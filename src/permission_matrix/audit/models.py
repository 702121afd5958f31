"""Data models for the permission audit trail."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from uuid import uuid4

from permission_matrix.domain.matrix import PermissionFlags


@dataclass(frozen=True)
class AuditLogEntry:
    id: str
    timestamp: str
    actor: str
    action: str
    module: str
    role: str
    changes: str

    def as_dict(self) -> dict[str, str]:
        return asdict(self)


def describe_changes(before: PermissionFlags, after: PermissionFlags) -> str:
    parts = [
        f"{name}: {str(old).lower()} -> {str(new).lower()}"
        for name, old, new in after.changes_from(before)
    ]
    return ", ".join(parts) if parts else "no changes"


def new_entry(
    actor: str,
    action: str,
    module: str,
    role: str,
    before: PermissionFlags,
    after: PermissionFlags,
) -> AuditLogEntry:
    return AuditLogEntry(
        id=uuid4().hex,
        timestamp=datetime.now(tz=timezone.utc).isoformat(),
        actor=actor,
        action=action,
        module=module,
        role=role,
        changes=describe_changes(before, after),
    )
