"""Report DTOs for the health and diagnostics endpoints."""
from __future__ import annotations
from enum import IntEnum
from typing import Dict, Literal, Mapping, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator


class SessionStatus(IntEnum):
    """Session subsystem state, numbered like the classic session API."""
    DISABLED = 0
    NONE = 1
    ACTIVE = 2


class HealthReport(BaseModel):
    """Aggregated health verdict."""
    status: Literal["healthy", "unhealthy"] = Field(..., description="Overall verdict")
    checks: Dict[str, bool] = Field(..., min_length=1, description="Check name to result")
    user_id: int = Field(..., description="Process user id")
    timestamp: str = Field(..., description="ISO-8601 timestamp")

    @model_validator(mode="after")
    def _status_matches_checks(self) -> "HealthReport":
        expected = "healthy" if all(self.checks.values()) else "unhealthy"
        if self.status != expected:
            raise ValueError(f"status must be {expected!r} for the given checks")
        return self

    @classmethod
    def from_checks(cls, checks: Mapping[str, bool], user_id: int, timestamp: str) -> "HealthReport":
        """Build a report whose status is derived from the checks."""
        healthy = all(checks.values())
        return cls(
            status="healthy" if healthy else "unhealthy",
            checks=dict(checks),
            user_id=user_id,
            timestamp=timestamp,
        )

    @property
    def healthy(self) -> bool:
        return self.status == "healthy"

    @property
    def http_status(self) -> int:
        return 200 if self.healthy else 503


class Identity(BaseModel):
    """Process identity inside the container."""
    env_var: str = Field(..., description="Value of the rootless marker variable, or 'unset'")
    user_id: int = Field(..., description="Process user id")
    user_name: str = Field(..., description="Passwd name of the user, or 'unknown'")
    group_id: int = Field(..., description="Process group id")


class ServerInfo(BaseModel):
    """Serving process details as seen by the request."""
    software: str = Field("unknown", description="Server software")
    protocol: str = Field("unknown", description="HTTP protocol version")
    port: str = Field("unknown", description="Server port")


class FilesystemReport(BaseModel):
    """Outcome of the temp directory write test."""
    write_test: bool = Field(..., description="Whether the test file was written")
    temp_dir_writable: bool = Field(..., description="Whether the temp directory is writable")


class SessionReport(BaseModel):
    """Session subsystem state after the start attempt."""
    status: int = Field(..., description="0 disabled, 1 none, 2 active")
    id: Optional[str] = Field(None, description="Session id, null when no session is active")


class DiagnosticsReport(BaseModel):
    """Runtime and environment snapshot."""
    model_config = ConfigDict(populate_by_name=True)

    status: str = Field("ok", description="Always 'ok'")
    runtime_version: str = Field(..., serialization_alias="php_version", description="Interpreter version")
    sapi: str = Field(..., description="Server interface")
    timestamp: str = Field(..., description="ISO-8601 timestamp")
    identity: Identity = Field(..., serialization_alias="rootless")
    extensions: Dict[str, bool] = Field(default_factory=dict, description="Optional module availability")
    server: ServerInfo = Field(default_factory=ServerInfo)
    filesystem: FilesystemReport
    session: SessionReport
