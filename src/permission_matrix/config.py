"""Configuration management for the permission matrix."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

_config_logger = logging.getLogger(__name__)


class LoggingSettings(BaseModel):
    level: str = Field(default="INFO", description="Python logging level name")
    file: str | None = Field(default=None, description="Optional log file path")


class StorageSettings(BaseModel):
    backend: Literal["sqlite", "memory"] = Field(default="sqlite")
    sqlite_path: str = Field(default="./data/permissions.sqlite")
    sqlite_wal: bool = Field(default=True)


class CatalogSettings(BaseModel):
    path: str = Field(default="./catalog.yaml")


class AuditSettings(BaseModel):
    max_entries: int = Field(default=50, ge=1, le=1000)


class Settings(BaseModel):
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    catalog: CatalogSettings = Field(default_factory=CatalogSettings)
    audit: AuditSettings = Field(default_factory=AuditSettings)


ENV_KEYS = {
    "log_level": "LOG_LEVEL",
    "log_file": "LOG_FILE",
    "store_backend": "PERMISSIONS_STORE",
    "sqlite_path": "SQLITE_PATH",
    "sqlite_wal": "SQLITE_WAL",
    "catalog_path": "CATALOG_PATH",
    "audit_max_entries": "AUDIT_MAX_ENTRIES",
}

_TRUE_VALUES = frozenset({"1", "true", "yes"})


def _project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _resolve_path(path: str) -> str:
    candidate = Path(path)
    root = _project_root().resolve()
    if candidate.is_absolute():
        resolved = candidate.resolve()
    else:
        resolved = (root / candidate).resolve()
    if not resolved.is_relative_to(root):
        raise ValueError(f"Path traversal detected: '{path}' resolves outside project root")
    return str(resolved)


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        _config_logger.warning(
            "Invalid integer value for %s: %r, using default %d", key, value, default
        )
        return default


def load_settings() -> Settings:
    """Load configuration and cache the result."""

    return _load_settings_cached()


@lru_cache(maxsize=1)
def _load_settings_cached() -> Settings:
    load_dotenv(dotenv_path=_project_root() / ".env")
    log_file_env = os.getenv(ENV_KEYS["log_file"])

    settings_data: dict[str, object] = {
        "logging": {
            "level": os.getenv(ENV_KEYS["log_level"], LoggingSettings().level),
            "file": _resolve_path(log_file_env) if log_file_env else None,
        },
        "storage": {
            "backend": os.getenv(ENV_KEYS["store_backend"], StorageSettings().backend)
            .strip()
            .lower(),
            "sqlite_path": _resolve_path(
                os.getenv(ENV_KEYS["sqlite_path"], StorageSettings().sqlite_path)
            ),
            "sqlite_wal": _env_bool(ENV_KEYS["sqlite_wal"], StorageSettings().sqlite_wal),
        },
        "catalog": {
            "path": _resolve_path(os.getenv(ENV_KEYS["catalog_path"], CatalogSettings().path)),
        },
        "audit": {
            "max_entries": _env_int(
                ENV_KEYS["audit_max_entries"], AuditSettings().max_entries
            ),
        },
    }

    try:
        settings = Settings.model_validate(settings_data)
    except ValidationError as exc:
        raise RuntimeError(f"Invalid configuration: {exc}") from exc

    if settings.storage.backend == "sqlite":
        Path(settings.storage.sqlite_path).parent.mkdir(parents=True, exist_ok=True)

    return settings
