from __future__ import annotations

import pytest

from permission_matrix import config
from permission_matrix.app import get_app_context


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    # Keep test runs from reading a developer .env or creating data/ files.
    monkeypatch.setattr(config, "load_dotenv", lambda **_: None)
    monkeypatch.setenv("PERMISSIONS_STORE", "memory")
    config._load_settings_cached.cache_clear()
    get_app_context.cache_clear()
    yield
    config._load_settings_cached.cache_clear()
    get_app_context.cache_clear()
