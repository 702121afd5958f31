"""Error taxonomy for the permission matrix."""

from __future__ import annotations


class PermissionMatrixError(Exception):
    """Base class for all permission matrix failures."""


class ProtectedRoleError(PermissionMatrixError):
    def __init__(self, role: str) -> None:
        super().__init__(f"Role '{role}' is protected and cannot be modified")
        self.role = role


class PermissionDeniedError(PermissionMatrixError):
    """Raised when the acting role may not administer permissions."""

    def __init__(self, actor_role: str, reason: str) -> None:
        super().__init__(f"Role '{actor_role}' {reason}")
        self.actor_role = actor_role


class UnknownModuleError(PermissionMatrixError, ValueError):
    def __init__(self, module: str) -> None:
        super().__init__(f"Unknown module: '{module}'")
        self.module = module


class UnknownRoleError(PermissionMatrixError, ValueError):
    def __init__(self, role: str) -> None:
        super().__init__(f"Unknown role: '{role}'")
        self.role = role


class StoreUnavailableError(PermissionMatrixError):
    """Raised when the backing store cannot load or save tenant state.

    A failed save leaves the in-memory matrix mutated but not durable; callers
    should retry ``save()`` or surface the failure.
    """
