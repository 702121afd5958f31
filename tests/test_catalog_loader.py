from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from permission_matrix.policy.loader import load_catalog
from permission_matrix.policy.models import DEFAULT_MODULES, DefaultPolicySets, ModuleCatalog


def test_load_catalog_file_not_found(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_catalog(str(tmp_path / "missing-catalog.yaml"))


def test_load_catalog_success(tmp_path: Path) -> None:
    path = tmp_path / "catalog.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "modules": ["contacts", "ai-suggestions"],
                "defaults": {"manager_deletable": None, "standard_personal": ["contacts"]},
            }
        ),
        encoding="utf-8",
    )

    catalog = load_catalog(str(path))

    assert catalog.modules == ["contacts", "ai-suggestions"]
    assert catalog.defaults.manager_deletable == []
    assert catalog.defaults.standard_personal == ["contacts"]
    assert catalog.defaults.admin_undeletable == ["users"]


def test_empty_file_uses_builtin_catalog(tmp_path: Path) -> None:
    path = tmp_path / "catalog.yaml"
    path.write_text("", encoding="utf-8")
    assert load_catalog(str(path)).modules == list(DEFAULT_MODULES)


def test_shipped_catalog_matches_builtin() -> None:
    shipped = load_catalog(str(Path(__file__).resolve().parents[1] / "catalog.yaml"))
    assert shipped.modules == list(DEFAULT_MODULES)
    assert shipped.defaults == DefaultPolicySets()


def test_duplicate_modules_rejected() -> None:
    with pytest.raises(ValidationError, match="Duplicate module ids"):
        ModuleCatalog(modules=["contacts", "contacts"])


def test_empty_module_list_rejected() -> None:
    with pytest.raises(ValidationError):
        ModuleCatalog(modules=[])
