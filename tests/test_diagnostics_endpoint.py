import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from src.core.config import Settings
from src.services.diagnostics import (
    TEST_FILE_PREFIX,
    ensure_session,
    filesystem_write_test,
    server_info,
    temp_test_path,
)

from conftest import FakeProbe

EXTENSION_NAMES = ["opcache", "redis", "pdo_mysql", "pdo_pgsql", "gd", "intl", "zip", "bcmath", "pcntl"]


def test_diagnostics_shape(monkeypatch, client_for):
    monkeypatch.setenv("PHPEEK_ROOTLESS", "true")
    monkeypatch.setenv("SERVER_SOFTWARE", "uvicorn")
    r = client_for(FakeProbe(uid=1001, gid=1002, user_name="www")).get("/")
    assert r.status_code == 200, r.text
    assert r.headers["content-type"].startswith("application/json")
    body = r.json()
    assert list(body) == [
        "status", "php_version", "sapi", "timestamp", "rootless",
        "extensions", "server", "filesystem", "session",
    ]
    assert body["status"] == "ok"
    assert body["php_version"] == "3.12.1"
    assert body["sapi"].startswith("asgi")
    assert body["rootless"] == {"env_var": "true", "user_id": 1001, "user_name": "www", "group_id": 1002}
    assert list(body["extensions"]) == EXTENSION_NAMES
    assert body["extensions"]["opcache"] is True
    assert body["extensions"]["redis"] is False
    assert body["server"] == {"software": "uvicorn", "protocol": "HTTP/1.1", "port": "80"}
    assert body["filesystem"] == {"write_test": True, "temp_dir_writable": True}


def test_diagnostics_is_pretty_printed(client_for):
    r = client_for(FakeProbe()).get("/")
    assert r.text.startswith("{\n    \"status\": \"ok\"")


def test_unset_env_and_unknown_user(monkeypatch, client_for):
    monkeypatch.delenv("PHPEEK_ROOTLESS", raising=False)
    body = client_for(FakeProbe(user_name=None)).get("/").json()
    assert body["rootless"]["env_var"] == "unset"
    assert body["rootless"]["user_name"] == "unknown"
    assert body["server"]["software"] == "unknown"


def test_empty_env_var_reports_unset(monkeypatch, client_for):
    monkeypatch.setenv("PHPEEK_ROOTLESS", "")
    body = client_for(FakeProbe()).get("/").json()
    assert body["rootless"]["env_var"] == "unset"


def test_write_test_leaves_no_file(tmp_path):
    report = filesystem_write_test(str(tmp_path))
    assert report.write_test is True
    assert report.temp_dir_writable is True
    assert list(tmp_path.iterdir()) == []


def test_missing_temp_dir_still_returns_200(monkeypatch, tmp_path, client_for):
    monkeypatch.setenv("TEMP_DIR", str(tmp_path / "missing"))
    r = client_for(FakeProbe()).get("/")
    assert r.status_code == 200
    assert r.json()["filesystem"] == {"write_test": False, "temp_dir_writable": False}


def test_write_failure_is_independent_of_dir_writability(monkeypatch, tmp_path):
    def refuse(self, *args, **kwargs):
        raise PermissionError("read-only file")

    monkeypatch.setattr(Path, "write_text", refuse)
    report = filesystem_write_test(str(tmp_path))
    assert report.write_test is False
    assert report.temp_dir_writable is os.access(str(tmp_path), os.W_OK)


def test_failed_cleanup_is_not_reported(monkeypatch, tmp_path):
    def refuse(self, *args, **kwargs):
        raise PermissionError("sticky dir")

    monkeypatch.setattr(Path, "unlink", refuse)
    report = filesystem_write_test(str(tmp_path))
    assert report.write_test is True


def test_temp_file_names_are_unique(tmp_path):
    names = {temp_test_path(str(tmp_path)).name for _ in range(500)}
    assert len(names) == 500
    assert all(n.startswith(TEST_FILE_PREFIX) and n.endswith(".txt") for n in names)


def test_concurrent_write_tests_do_not_collide(tmp_path):
    with ThreadPoolExecutor(max_workers=8) as pool:
        reports = list(pool.map(lambda _: filesystem_write_test(str(tmp_path)), range(32)))
    assert all(r.write_test for r in reports)
    assert list(tmp_path.iterdir()) == []


def test_session_started_and_reused(client_for):
    client = client_for(FakeProbe())
    first = client.get("/").json()["session"]
    assert first["status"] == 2
    assert isinstance(first["id"], str) and first["id"]
    second = client.get("/").json()["session"]
    assert second == first


def test_sessions_disabled(client_for):
    client = client_for(FakeProbe(), Settings(sessions_enabled=False))
    r = client.get("/")
    assert r.status_code == 200
    assert r.json()["session"] == {"status": 0, "id": None}


def test_session_start_failure_degrades():
    class ReadOnlySession(dict):
        def __setitem__(self, key, value):
            raise RuntimeError("session storage unavailable")

    report = ensure_session(ReadOnlySession())
    assert report.status == 1
    assert report.id is None


def test_existing_session_is_kept():
    report = ensure_session({"sid": "abc123"})
    assert report.status == 2
    assert report.id == "abc123"


def test_server_info_without_scope_details():
    info = server_info({})
    assert (info.software, info.protocol, info.port) == ("unknown", "unknown", "unknown")
