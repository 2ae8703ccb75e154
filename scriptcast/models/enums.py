"""Enumerations for the generation engine."""

from enum import Enum


class Channel(str, Enum):
    """Logical remote-call channel; each has its own rate and retry state."""

    SCRIPT = "script"
    AUDIO = "audio"
    IMAGE = "image"


class FailureKind(str, Enum):
    """Classification of a failed remote attempt."""

    OVERLOADED = "overloaded"
    RATE_LIMITED = "rate_limited"
    MALFORMED = "malformed"
    OTHER = "other"

    @property
    def is_retryable(self) -> bool:
        return self is not FailureKind.OTHER


class TurnRole(str, Enum):
    """Conversation roles, valued as the remote service names them."""

    REQUESTER = "user"
    RESPONDER = "model"


class SequencerState(str, Enum):
    """Script sequencer lifecycle."""

    IDLE = "idle"
    OUTLINE_REQUESTED = "outline_requested"
    OUTLINE_RECEIVED = "outline_received"
    SECTION_REQUESTED = "section_requested"
    SECTION_RECEIVED = "section_received"
    COMPLETE = "complete"
    FAILED = "failed"


class JobStatus(str, Enum):
    """Job processing status."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
