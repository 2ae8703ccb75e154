"""Custom exceptions for the generation engine."""

from .errors import (
    AudioGenerationError,
    ConfigurationError,
    ExhaustedRetriesError,
    FormatMismatchError,
    GenerationError,
    ImageGenerationError,
    MalformedResponseError,
    QuotaExceededError,
    RemoteServiceError,
    ScriptGenerationError,
    StorageError,
    TotalFailureError,
    TransientOverloadError,
)

__all__ = [
    "GenerationError",
    "RemoteServiceError",
    "TransientOverloadError",
    "QuotaExceededError",
    "MalformedResponseError",
    "FormatMismatchError",
    "ExhaustedRetriesError",
    "TotalFailureError",
    "ScriptGenerationError",
    "AudioGenerationError",
    "ImageGenerationError",
    "StorageError",
    "ConfigurationError",
]
