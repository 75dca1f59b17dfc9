"""Application configuration utilities.

This module centralizes environment configuration for the fixture backend:
the rootless marker variable, the memory limit used by the health check,
the temp directory probed by the diagnostics endpoint and session options.

Controls:
- Do not log secrets (the session secret is never printed).
- Validate numeric and enum-like env values.
- Avoid crashing on missing env; provide safe defaults.

Environment variables:
- ROOTLESS_ENV_VAR: Name of the variable marking rootless mode (default PHPEEK_ROOTLESS)
- MEMORY_LIMIT: Memory ceiling with optional K/M/G suffix, "-1" for unlimited (default 128M)
- MEMORY_THRESHOLD: Fraction of the limit considered healthy (default 0.9)
- TEMP_DIR: Directory used for the write test (default: system temp dir)
- SESSIONS_ENABLED: Enable the session subsystem (default true)
- SESSION_SECRET: Secret used to sign session cookies (default: random per process)
- SERVER_SOFTWARE: Server software reported by diagnostics (default unset)
- LOG_LEVEL: Root log level (default INFO)
"""
from __future__ import annotations

import logging
import os
import secrets
import tempfile
from typing import Optional
from pydantic import BaseModel, Field, ValidationError


_TRUTHY = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """Configuration settings loaded from environment with safe defaults."""
    rootless_env_var: str = Field(
        default="PHPEEK_ROOTLESS", description="Environment variable marking rootless mode."
    )
    memory_limit: str = Field(
        default="128M", description="Memory limit with optional K/M/G suffix; -1 means unlimited."
    )
    memory_threshold: float = Field(
        default=0.9, gt=0, le=1, description="Fraction of the memory limit below which memory is healthy."
    )
    temp_dir: str = Field(
        default_factory=tempfile.gettempdir, description="Directory used for the filesystem write test."
    )
    sessions_enabled: bool = Field(default=True, description="Enable the session subsystem.")
    session_secret: str = Field(
        default_factory=lambda: secrets.token_urlsafe(32),
        description="Secret used to sign session cookies.",
    )
    server_software: Optional[str] = Field(
        default=None, description="Server software name reported by diagnostics."
    )
    log_level: str = Field(default="INFO", description="Root log level name.")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    if not 0 < value <= 1:
        return default
    return value


def _env_log_level(name: str, default: str) -> str:
    level = os.getenv(name, default).strip().upper()
    if not isinstance(logging.getLevelName(level), int):
        level = default  # unknown level names map to "Level X" strings
    return level


def load_settings() -> Settings:
    """Load settings from environment with robust defaults and validation.

    Returns:
        Settings: Validated settings object.

    Raises:
        ValidationError: If environment values are invalid.
    """
    sessions_raw = os.getenv("SESSIONS_ENABLED", "true").strip().lower()

    values = {
        "rootless_env_var": os.getenv("ROOTLESS_ENV_VAR", "PHPEEK_ROOTLESS").strip() or "PHPEEK_ROOTLESS",
        "memory_limit": os.getenv("MEMORY_LIMIT", "128M"),
        "memory_threshold": _env_float("MEMORY_THRESHOLD", 0.9),
        "sessions_enabled": sessions_raw in _TRUTHY,
        "server_software": os.getenv("SERVER_SOFTWARE") or None,
        "log_level": _env_log_level("LOG_LEVEL", "INFO"),
    }
    temp_dir = os.getenv("TEMP_DIR")
    if temp_dir:
        values["temp_dir"] = temp_dir
    session_secret = os.getenv("SESSION_SECRET")
    if session_secret:
        values["session_secret"] = session_secret

    try:
        settings = Settings(**values)
    except ValidationError as ve:
        # Keep error generic to avoid leaking values
        raise ve
    return settings


# Singleton-style accessor
_settings: Optional[Settings] = None

# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Get cached application settings."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings

# PUBLIC_INTERFACE
def reset_settings_cache() -> None:
    """Reset the cached settings.

    This is primarily intended for tests to ensure that changes to environment
    variables (e.g., MEMORY_LIMIT, PHPEEK_ROOTLESS) take effect on subsequent
    calls to get_settings().
    """
    global _settings
    _settings = None
