"""Data models for the generation service."""

from .content import (
    AudioResult,
    Chunk,
    ConversationTurn,
    GeneratedImage,
    ImageBatchResult,
    ProductionResult,
    ScriptResult,
    Section,
)
from .enums import Channel, FailureKind, JobStatus, SequencerState, TurnRole
from .events import (
    AudioChunkEvent,
    ErrorEvent,
    ImageChunkEvent,
    OutlineEvent,
    ProgressEvent,
    ProgressMessage,
    RetryEvent,
    SectionEvent,
)
from .requests import AudioRequest, ImageRequest, ProductionRequest, ScriptRequest
from .responses import GenerationResponse, HealthResponse, JobStatusResponse

__all__ = [
    # Content
    "AudioResult",
    "Chunk",
    "ConversationTurn",
    "GeneratedImage",
    "ImageBatchResult",
    "ProductionResult",
    "ScriptResult",
    "Section",
    # Enums
    "Channel",
    "FailureKind",
    "JobStatus",
    "SequencerState",
    "TurnRole",
    # Events
    "AudioChunkEvent",
    "ErrorEvent",
    "ImageChunkEvent",
    "OutlineEvent",
    "ProgressEvent",
    "ProgressMessage",
    "RetryEvent",
    "SectionEvent",
    # Requests
    "AudioRequest",
    "ImageRequest",
    "ProductionRequest",
    "ScriptRequest",
    # Responses
    "GenerationResponse",
    "HealthResponse",
    "JobStatusResponse",
]
