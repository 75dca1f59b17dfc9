"""
Pytest configuration to ensure the application package (src/) is importable,
plus a fake environment probe for endpoint tests.

This adjusts sys.path so `from src.api.main import app` works when tests run
from the project root without an installed package.
"""
import sys
from pathlib import Path
from typing import Dict, Optional

import pytest

# Compute the project root that contains the 'src' directory
PROJECT_ROOT = Path(__file__).resolve().parents[1]

# Prepend project root to sys.path if not already present
project_root_str = str(PROJECT_ROOT)
if project_root_str not in sys.path:
    sys.path.insert(0, project_root_str)

from src.core.config import reset_settings_cache  # noqa: E402


class FakeProbe:
    """In-memory EnvironmentProbe with configurable answers."""

    def __init__(
        self,
        uid: int = 1000,
        gid: int = 1000,
        user_name: Optional[str] = "app",
        memory: int = 10 * 1024 * 1024,
        cache_enabled: bool = True,
        capabilities: Optional[Dict[str, bool]] = None,
        version: str = "3.12.1",
    ) -> None:
        self.uid = uid
        self.gid = gid
        self.name = user_name
        self.memory = memory
        self.cache_enabled = cache_enabled
        self.capabilities = capabilities if capabilities is not None else {"opcache": True, "zip": True}
        self.version = version

    def has_capability(self, name: str) -> bool:
        return self.capabilities.get(name, False)

    def cache_accelerator_enabled(self) -> bool:
        return self.cache_enabled

    def current_user_id(self) -> int:
        return self.uid

    def current_group_id(self) -> int:
        return self.gid

    def user_name(self, uid: int) -> Optional[str]:
        return self.name

    def memory_usage(self) -> int:
        return self.memory

    def runtime_version(self) -> str:
        return self.version


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch, tmp_path):
    """Isolate each test from ambient configuration."""
    for name in (
        "MEMORY_LIMIT", "MEMORY_THRESHOLD", "SESSIONS_ENABLED", "SESSION_SECRET",
        "SERVER_SOFTWARE", "ROOTLESS_ENV_VAR", "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("TEMP_DIR", str(tmp_path))
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture
def fake_probe() -> FakeProbe:
    return FakeProbe()


@pytest.fixture
def client_for():
    """Factory: TestClient for a fresh app using the given probe."""
    from fastapi.testclient import TestClient

    from src.api.main import create_app
    from src.core.config import get_settings
    from src.services.probe import get_probe

    def _make(probe, settings=None) -> TestClient:
        app = create_app(settings or get_settings())
        app.dependency_overrides[get_probe] = lambda: probe
        return TestClient(app)

    return _make
