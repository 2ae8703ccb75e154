"""Progress events reported by the engine while a run is in flight.

Each event carries only the fields relevant to its ``type`` tag. Events are
created when a step starts, completes or fails, handed to the listener once
and never persisted by the engine.
"""

from datetime import datetime, timezone
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from .enums import Channel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _BaseEvent(BaseModel):
    channel: Channel
    message: str = ""
    created_at: datetime = Field(default_factory=_utcnow)


class ProgressMessage(_BaseEvent):
    """Free-form lifecycle message."""

    type: Literal["progress"] = "progress"
    output_path: Optional[str] = None


class OutlineEvent(_BaseEvent):
    """The outline turn was received."""

    type: Literal["outline"] = "outline"
    content: str


class SectionEvent(_BaseEvent):
    """A numbered script section was received."""

    type: Literal["section"] = "section"
    section_number: int = Field(..., ge=1)
    content: str


class AudioChunkEvent(_BaseEvent):
    """Audio generation reached a text chunk."""

    type: Literal["audio_chunk"] = "audio_chunk"
    chunk_index: int
    total_chunks: int


class ImageChunkEvent(_BaseEvent):
    """Image generation reached a sub-prompt."""

    type: Literal["image_chunk"] = "image_chunk"
    current: int
    total: int


class ErrorEvent(_BaseEvent):
    """A unit of work or a whole run failed."""

    type: Literal["error"] = "error"
    error: str
    failure_kind: Optional[str] = None
    fatal: bool = False


class RetryEvent(_BaseEvent):
    """A remote call is about to be retried."""

    type: Literal["retry"] = "retry"
    attempt: int
    max_attempts: int
    delay_seconds: float
    failure_kind: str


ProgressEvent = Annotated[
    Union[
        ProgressMessage,
        OutlineEvent,
        SectionEvent,
        AudioChunkEvent,
        ImageChunkEvent,
        ErrorEvent,
        RetryEvent,
    ],
    Field(discriminator="type"),
]
