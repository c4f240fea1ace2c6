"""
Base model and the system-level response envelopes.

Domain payloads travel as camelCase JSON (the dashboard's convention) while
Python code uses snake_case attributes; ``CamelModel`` bridges the two.
"""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Serializes with camelCase aliases; accepts either spelling on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    # API up, database unreachable: predictions and cBioPortal still work
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class HealthResponse(BaseModel):
    """Body of ``GET /health``; ``checks`` maps component name to reachability."""
    status: HealthStatus
    version: str
    environment: str
    timestamp: datetime = Field(default_factory=utc_now)
    checks: dict[str, bool] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """
    Body of every non-validation error response.

    Attributes:
        error: Machine-readable code, e.g. NOT_FOUND or STORAGE_UNAVAILABLE.
        message: Text safe to show in the dashboard.
        request_id: Same value as the X-Request-ID response header.
    """
    error: str = Field(..., description="Error code")
    message: str = Field(..., description="Human-readable message")
    details: dict | list | None = Field(default=None, description="Additional details")
    request_id: str | None = Field(default=None, description="Request ID for tracing")
    timestamp: datetime = Field(default_factory=utc_now)
