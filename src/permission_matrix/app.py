"""Application context assembly."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from permission_matrix.config import Settings, load_settings
from permission_matrix.logging_utils import configure_logging
from permission_matrix.policy.loader import load_catalog
from permission_matrix.policy.models import ModuleCatalog
from permission_matrix.service import PermissionService
from permission_matrix.store.memory import InMemoryStore
from permission_matrix.store.sqlite import SqliteKeyValueStore

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Process-wide dependencies for the embedding application.

    Tenant state lives in the service's per-tenant engines, not here.
    """

    settings: Settings
    store: SqliteKeyValueStore | InMemoryStore
    catalog: ModuleCatalog
    service: PermissionService


@lru_cache(maxsize=1)
def get_app_context() -> AppContext:
    settings = load_settings()
    configure_logging()

    if Path(settings.catalog.path).exists():
        catalog = load_catalog(settings.catalog.path)
    else:
        logger.info(
            "Catalog file %s not found, using the built-in module catalog",
            settings.catalog.path,
        )
        catalog = ModuleCatalog()

    store: SqliteKeyValueStore | InMemoryStore
    if settings.storage.backend == "memory":
        store = InMemoryStore()
    else:
        store = SqliteKeyValueStore(settings.storage.sqlite_path, wal=settings.storage.sqlite_wal)

    service = PermissionService(
        store,
        catalog=catalog,
        audit_store=store,
        audit_max_entries=settings.audit.max_entries,
    )

    return AppContext(settings=settings, store=store, catalog=catalog, service=service)
