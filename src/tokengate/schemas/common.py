"""Shared Pydantic schemas for common API elements."""
from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ErrorBody(BaseModel):
    """Client-facing error details. Never carries internal diagnostics."""

    message: str = Field(..., description="Human readable message")
    code: str = Field(..., description="Stable machine readable error code")
    request_id: str | None = Field(None, alias="requestId")
    timestamp: str = Field(..., description="ISO-8601 UTC time the error was produced")
    retry_after: int | None = Field(None, alias="retryAfter")

    model_config = ConfigDict(populate_by_name=True)


class ErrorEnvelope(BaseModel):
    """Wrapper placing the error body under an ``error`` key."""

    error: ErrorBody
