"""
Pydantic Schemas for the prebundle control endpoints.

Error Codes:
- CONFIG_ERROR: the configuration (e.g. alias table) is invalid
- UNRESOLVED_DEPENDENCY: an observed dependency has no versioned manifest
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Structured error codes."""
    CONFIG_ERROR = "CONFIG_ERROR"
    UNRESOLVED_DEPENDENCY = "UNRESOLVED_DEPENDENCY"


class DependencyInfo(BaseModel):
    """One dependency of the persisted snapshot."""
    specifier: str
    version: str
    file: str


class BuildInfo(BaseModel):
    """Outcome of the most recent build."""
    ok: bool
    skipped: bool = False
    dep_count: int = 0
    duration_ms: Optional[int] = None
    errors: list[str] = Field(default_factory=list)


class StatusResponse(BaseModel):
    """Current prebundle state."""
    mode: str
    output_dir: str
    building: bool
    pending: bool
    deps: list[DependencyInfo] = Field(default_factory=list)
    last_build: Optional[BuildInfo] = None


class TriggerResponse(BaseModel):
    """Response to a build trigger."""
    scheduled: bool
    force: bool = False
    dep_count: int = 0


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    error_code: ErrorCode
