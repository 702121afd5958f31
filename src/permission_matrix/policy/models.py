"""Module catalog and default-policy configuration models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

DEFAULT_MODULES: tuple[str, ...] = (
    "dashboard",
    "ai-suggestions",
    "team-dashboard",
    "contacts",
    "tasks",
    "appointments",
    "opportunities",
    "bids",
    "notes",
    "documents",
    "email",
    "marketing",
    "inventory",
    "project-wizards",
    "reports",
    "users",
    "settings",
    "security",
    "import-export",
)


def _ensure_list(v: Any) -> list:
    """Convert None to empty list, pass through lists."""
    if v is None:
        return []
    return v


class DefaultPolicySets(BaseModel):
    """Module-set memberships that drive the generated defaults per role."""

    admin_undeletable: list[str] = Field(default_factory=lambda: ["users"])
    manager_restricted: list[str] = Field(default_factory=lambda: ["settings", "users"])
    manager_deletable: list[str] = Field(default_factory=lambda: ["marketing"])
    marketing_hidden: list[str] = Field(default_factory=lambda: ["users", "settings", "bids"])
    marketing_owned: list[str] = Field(
        default_factory=lambda: ["marketing", "contacts", "email"]
    )
    marketing_deletable: list[str] = Field(default_factory=lambda: ["marketing"])
    standard_hidden: list[str] = Field(default_factory=lambda: ["users", "settings"])
    standard_personal: list[str] = Field(default_factory=lambda: ["contacts", "tasks", "notes"])

    @field_validator(
        "admin_undeletable",
        "manager_restricted",
        "manager_deletable",
        "marketing_hidden",
        "marketing_owned",
        "marketing_deletable",
        "standard_hidden",
        "standard_personal",
        mode="before",
    )
    @classmethod
    def _validate_lists(cls, v: Any) -> list:
        return _ensure_list(v)


class ModuleCatalog(BaseModel):
    version: int = Field(default=1, ge=1)
    modules: list[str] = Field(default_factory=lambda: list(DEFAULT_MODULES))
    defaults: DefaultPolicySets = Field(default_factory=DefaultPolicySets)

    @field_validator("modules", mode="before")
    @classmethod
    def _validate_modules(cls, v: Any) -> list:
        modules = [str(m).strip() for m in _ensure_list(v)]
        if not modules or any(not m for m in modules):
            raise ValueError("Module catalog must list at least one non-empty module id")
        duplicates = sorted({m for m in modules if modules.count(m) > 1})
        if duplicates:
            raise ValueError(f"Duplicate module ids in catalog: {', '.join(duplicates)}")
        return modules

    @field_validator("defaults", mode="before")
    @classmethod
    def _validate_defaults(cls, v: Any) -> Any:
        if v is None:
            return {}
        return v

    @classmethod
    def from_yaml(cls, data: dict[str, object]) -> "ModuleCatalog":
        return cls.model_validate(data)
