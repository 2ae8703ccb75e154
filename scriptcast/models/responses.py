"""API response models."""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class GenerationResponse(BaseModel):
    """Response after starting (or finishing) a generation run."""

    job_id: str = Field(..., description="Unique job identifier")
    status: str = Field(..., description="Current job status")
    result: Optional[dict[str, Any]] = Field(
        default=None,
        description="Run result (available when completed)",
    )
    created_at: str = Field(
        default_factory=_utcnow_iso,
        description="Timestamp when the job was created",
    )

    model_config = {"json_schema_extra": {
        "example": {
            "job_id": "audio_3f9c1a2b7d4e",
            "status": "processing",
            "result": None,
            "created_at": "2025-01-15T10:30:00+00:00",
        }
    }}


class JobStatusResponse(BaseModel):
    """Response for a job status check."""

    job_id: str = Field(..., description="Unique job identifier")
    kind: str = Field(..., description="Run kind: script, audio, images or production")
    status: str = Field(
        ...,
        description="Current status: pending, processing, completed, failed",
    )
    progress: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Progress from 0.0 to 1.0",
    )
    result: Optional[dict[str, Any]] = Field(default=None)
    error_message: Optional[str] = Field(
        default=None,
        description="Error message if status is 'failed'",
    )
    events: list[dict[str, Any]] = Field(
        default_factory=list,
        description="Progress events received so far, oldest first",
    )
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(default="healthy")
    version: str = Field(default="1.0.0")
    timestamp: str = Field(default_factory=_utcnow_iso)
