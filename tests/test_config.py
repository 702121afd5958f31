from __future__ import annotations

import pytest

from permission_matrix import config


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ("LOG_LEVEL", "LOG_FILE", "CATALOG_PATH", "AUDIT_MAX_ENTRIES"):
        monkeypatch.delenv(key, raising=False)

    settings = config.load_settings()

    assert settings.storage.backend == "memory"
    assert settings.audit.max_entries == 50
    assert settings.logging.level == "INFO"
    assert settings.catalog.path == str(config._project_root().resolve() / "catalog.yaml")


def test_settings_are_cached() -> None:
    assert config.load_settings() is config.load_settings()


def test_resolve_path_absolute_inside_project() -> None:
    root = str(config._project_root().resolve())
    absolute = f"{root}/data/test_file"
    assert config._resolve_path(absolute) == absolute


def test_resolve_path_absolute_outside_project_rejected() -> None:
    with pytest.raises(ValueError, match="Path traversal detected"):
        config._resolve_path("/tmp/example")


def test_env_int_uses_default_for_blank(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TEST_INT_VALUE", "")
    assert config._env_int("TEST_INT_VALUE", 7) == 7


def test_env_int_invalid_value_returns_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TEST_INT_INVALID", "not_a_number")
    assert config._env_int("TEST_INT_INVALID", 42) == 42


def test_env_bool(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TEST_BOOL", " Yes ")
    assert config._env_bool("TEST_BOOL", False) is True
    monkeypatch.setenv("TEST_BOOL", "off")
    assert config._env_bool("TEST_BOOL", True) is False


def test_audit_max_entries_out_of_range(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUDIT_MAX_ENTRIES", "0")

    with pytest.raises(RuntimeError, match="Invalid configuration"):
        config.load_settings()


def test_unknown_store_backend(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PERMISSIONS_STORE", "postgres")

    with pytest.raises(RuntimeError, match="Invalid configuration"):
        config.load_settings()


def test_store_backend_is_normalized(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PERMISSIONS_STORE", " Memory ")
    assert config.load_settings().storage.backend == "memory"
