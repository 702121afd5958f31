"""Catalog loader for catalog.yaml."""

from __future__ import annotations

from pathlib import Path

import yaml

from permission_matrix.policy.models import ModuleCatalog


def load_catalog(path: str) -> ModuleCatalog:
    catalog_path = Path(path)
    if not catalog_path.exists():
        raise FileNotFoundError(f"Catalog file not found: {catalog_path}")
    with catalog_path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    return ModuleCatalog.from_yaml(data)
