"""Response envelopes shared by the API routes."""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


def utc_timestamp() -> str:
    return datetime.now(UTC).isoformat()


class TriggerResponse(BaseModel):
    """Outcome of a privileged trigger."""

    success: bool = True
    stats: dict[str, Any]
    timestamp: str = Field(default_factory=utc_timestamp)


class ErrorResponse(BaseModel):
    """Failure envelope for triggers and reads."""

    success: bool = False
    error: str
    timestamp: str = Field(default_factory=utc_timestamp)


class DataResponse(BaseModel):
    """Read-only query result."""

    data: Any
    timestamp: str = Field(default_factory=utc_timestamp)
