"""Environment probing behind a small capability interface.

Endpoint cores never touch ``os``, ``pwd`` or ``psutil`` directly; they ask an
``EnvironmentProbe``. ``SystemProbe`` answers from the running process and
tests inject fakes through FastAPI dependency overrides.

Capability names are the extension names the image checks expect; each
maps to the Python modules that provide the same facility.
"""
from __future__ import annotations

import importlib.util
import logging
import os
import platform
import sys
from typing import Dict, Mapping, Optional, Protocol, Tuple

import psutil
from pydantic import BaseModel, Field

from src.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

CACHE_ACCELERATOR = "opcache"

# Capability name -> any of these importable modules means available.
EXTENSION_MODULES: Dict[str, Tuple[str, ...]] = {
    "redis": ("redis",),
    "pdo_mysql": ("pymysql", "MySQLdb"),
    "pdo_pgsql": ("psycopg", "psycopg2"),
    "gd": ("PIL",),
    "intl": ("icu", "babel"),
    "zip": ("zipfile",),
    "bcmath": ("decimal",),
    "pcntl": ("signal",),
}

# Order reported by the diagnostics endpoint.
REPORTED_EXTENSIONS: Tuple[str, ...] = (CACHE_ACCELERATOR,) + tuple(EXTENSION_MODULES)


class EnvironmentProbe(Protocol):
    """Read-only view of the process environment."""

    def has_capability(self, name: str) -> bool: ...

    def cache_accelerator_enabled(self) -> bool: ...

    def current_user_id(self) -> int: ...

    def current_group_id(self) -> int: ...

    def user_name(self, uid: int) -> Optional[str]: ...

    def memory_usage(self) -> int: ...

    def runtime_version(self) -> str: ...


class RuntimeContext(BaseModel):
    """Ambient state handed explicitly to the health core."""
    environ: Dict[str, str] = Field(default_factory=dict, description="Environment variables")
    memory_limit: str = Field("128M", description="Configured memory limit string")
    memory_usage: int = Field(0, ge=0, description="Current process memory usage in bytes")
    memory_threshold: float = Field(0.9, gt=0, le=1, description="Healthy fraction of the limit")
    rootless_env_var: str = Field("PHPEEK_ROOTLESS", description="Name of the rootless marker variable")


def _module_available(name: str) -> bool:
    try:
        return importlib.util.find_spec(name) is not None
    except (ImportError, ValueError):
        return False


class SystemProbe:
    """Probe backed by the running interpreter and OS."""

    def __init__(self, modules: Optional[Mapping[str, Tuple[str, ...]]] = None) -> None:
        self._modules = dict(EXTENSION_MODULES if modules is None else modules)

    def has_capability(self, name: str) -> bool:
        if name == CACHE_ACCELERATOR:
            return sys.implementation.cache_tag is not None
        if name == "pcntl" and not hasattr(os, "fork"):
            return False
        candidates = self._modules.get(name)
        if not candidates:
            return False
        return any(_module_available(m) for m in candidates)

    def cache_accelerator_enabled(self) -> bool:
        return self.has_capability(CACHE_ACCELERATOR) and not sys.dont_write_bytecode

    def current_user_id(self) -> int:
        return os.getuid()

    def current_group_id(self) -> int:
        return os.getgid()

    def user_name(self, uid: int) -> Optional[str]:
        import pwd

        try:
            return pwd.getpwuid(uid).pw_name
        except KeyError:
            return None

    def memory_usage(self) -> int:
        return psutil.Process().memory_info().rss

    def runtime_version(self) -> str:
        return platform.python_version()


# PUBLIC_INTERFACE
def get_probe() -> EnvironmentProbe:
    """Dependency returning the process probe."""
    return SystemProbe()


# PUBLIC_INTERFACE
def build_runtime_context(probe: EnvironmentProbe, settings: Optional[Settings] = None) -> RuntimeContext:
    """Snapshot environment and memory stats into a RuntimeContext."""
    settings = settings or get_settings()
    try:
        usage = probe.memory_usage()
    except (OSError, psutil.Error) as exc:
        logger.warning("Could not read memory usage: %s: %s", type(exc).__name__, exc)
        # Unknown usage must not look healthy.
        usage = sys.maxsize
    return RuntimeContext(
        environ=dict(os.environ),
        memory_limit=settings.memory_limit,
        memory_usage=usage,
        memory_threshold=settings.memory_threshold,
        rootless_env_var=settings.rootless_env_var,
    )
