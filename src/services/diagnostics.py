"""Diagnostics snapshot of the runtime and its environment.

All probes are best-effort: failures are logged and degrade to
false/null/"unknown" values, so the snapshot is always produced.
"""
from __future__ import annotations

import logging
import os
import secrets
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Mapping, MutableMapping, Optional
from uuid import uuid4

from src.core.config import Settings, get_settings
from src.models.reports import (
    DiagnosticsReport,
    FilesystemReport,
    Identity,
    ServerInfo,
    SessionReport,
    SessionStatus,
)
from src.services.health import local_timestamp
from src.services.probe import REPORTED_EXTENSIONS, EnvironmentProbe

logger = logging.getLogger(__name__)

TEST_FILE_PREFIX = "rootless-probe-"
SESSION_ID_KEY = "sid"


def temp_test_path(temp_dir: str) -> Path:
    """Unique test file path inside temp_dir."""
    return Path(temp_dir) / f"{TEST_FILE_PREFIX}{uuid4().hex}.txt"


# PUBLIC_INTERFACE
def filesystem_write_test(temp_dir: str) -> FilesystemReport:
    """Write a small file to temp_dir and remove it again.

    ``write_test`` reflects the write itself; ``temp_dir_writable`` is an
    independent access check on the directory.
    """
    path = temp_test_path(temp_dir)
    try:
        path.write_text("test", encoding="utf-8")
        written = True
    except OSError as exc:
        logger.info("Write test to %s failed: %s", path, exc)
        written = False
    if written:
        try:
            path.unlink()
        except OSError as exc:
            logger.debug("Could not remove %s: %s", path, exc)
    return FilesystemReport(write_test=written, temp_dir_writable=os.access(temp_dir, os.W_OK))


# PUBLIC_INTERFACE
def ensure_session(session: Optional[MutableMapping[str, Any]]) -> SessionReport:
    """Start a session when none is active and report its state.

    ``session`` is the request's session mapping, or None when the session
    subsystem is disabled.
    """
    if session is None:
        return SessionReport(status=int(SessionStatus.DISABLED), id=None)
    try:
        if not session.get(SESSION_ID_KEY):
            session[SESSION_ID_KEY] = secrets.token_hex(16)
        sid = session.get(SESSION_ID_KEY)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Could not start session: %s: %s", type(exc).__name__, exc)
        sid = None
    if isinstance(sid, str) and sid:
        return SessionReport(status=int(SessionStatus.ACTIVE), id=sid)
    return SessionReport(status=int(SessionStatus.NONE), id=None)


def server_info(scope: Mapping[str, Any], software: Optional[str] = None) -> ServerInfo:
    """Server software, protocol and port from an ASGI scope."""
    http_version = scope.get("http_version")
    server = scope.get("server")
    port = server[1] if server and len(server) > 1 and server[1] is not None else None
    return ServerInfo(
        software=software or "unknown",
        protocol=f"HTTP/{http_version}" if http_version else "unknown",
        port=str(port) if port is not None else "unknown",
    )


def interface_name(scope: Mapping[str, Any]) -> str:
    version = (scope.get("asgi") or {}).get("spec_version")
    return f"asgi/{version}" if version else "asgi"


def identity(probe: EnvironmentProbe, environ: Mapping[str, str], env_var: str) -> Identity:
    uid = probe.current_user_id()
    try:
        name = probe.user_name(uid)
    except OSError as exc:
        logger.debug("User lookup for uid %s failed: %s", uid, exc)
        name = None
    return Identity(
        env_var=environ.get(env_var) or "unset",
        user_id=uid,
        user_name=name or "unknown",
        group_id=probe.current_group_id(),
    )


def extensions(probe: EnvironmentProbe) -> Dict[str, bool]:
    flags: Dict[str, bool] = {}
    for name in REPORTED_EXTENSIONS:
        try:
            flags[name] = bool(probe.has_capability(name))
        except Exception as exc:  # noqa: BLE001
            logger.debug("Capability %r probe failed: %s", name, exc)
            flags[name] = False
    return flags


# PUBLIC_INTERFACE
def collect_diagnostics(
    probe: EnvironmentProbe,
    scope: Mapping[str, Any],
    session: Optional[MutableMapping[str, Any]],
    environ: Optional[Mapping[str, str]] = None,
    settings: Optional[Settings] = None,
    now: Optional[datetime] = None,
) -> DiagnosticsReport:
    """Assemble the diagnostics report for one request."""
    settings = settings or get_settings()
    environ = dict(os.environ) if environ is None else environ
    return DiagnosticsReport(
        status="ok",
        runtime_version=probe.runtime_version(),
        sapi=interface_name(scope),
        timestamp=local_timestamp(now),
        identity=identity(probe, environ, settings.rootless_env_var),
        extensions=extensions(probe),
        server=server_info(scope, settings.server_software),
        filesystem=filesystem_write_test(settings.temp_dir),
        session=ensure_session(session),
    )
