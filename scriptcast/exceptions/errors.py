"""Custom exception classes for the generation engine."""

from typing import Any, Optional


class GenerationError(Exception):
    """Base exception for generation errors."""

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class RemoteServiceError(GenerationError):
    """The remote generation service rejected or failed a request."""

    def __init__(
        self,
        message: str = "Remote service error",
        status_code: Optional[int] = None,
        **kwargs: Any,
    ):
        details = kwargs.pop("details", {})
        if status_code:
            details["status_code"] = status_code
        super().__init__(message, details=details, **kwargs)
        self.status_code = status_code


class TransientOverloadError(RemoteServiceError):
    """Service temporarily unavailable (HTTP 503)."""

    def __init__(self, message: str = "Service overloaded", **kwargs: Any):
        kwargs.setdefault("status_code", 503)
        super().__init__(message, **kwargs)


class QuotaExceededError(RemoteServiceError):
    """Quota exceeded for the remote service (HTTP 429)."""

    def __init__(
        self,
        message: str = "Quota exceeded",
        retry_after: Optional[float] = None,
        **kwargs: Any,
    ):
        kwargs.setdefault("status_code", 429)
        details = kwargs.pop("details", {})
        if retry_after is not None:
            details["retry_after_seconds"] = retry_after
        super().__init__(message, details=details, **kwargs)
        self.retry_after = retry_after


class MalformedResponseError(GenerationError):
    """Response was empty or missing an expected field."""

    def __init__(
        self,
        message: str = "Malformed response from remote service",
        field: Optional[str] = None,
        **kwargs: Any,
    ):
        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        super().__init__(message, details=details, **kwargs)


class FormatMismatchError(GenerationError):
    """Audio fragments cannot be joined into one container."""

    def __init__(
        self,
        message: str = "Audio format mismatch",
        fragment_index: Optional[int] = None,
        **kwargs: Any,
    ):
        details = kwargs.pop("details", {})
        if fragment_index is not None:
            details["fragment_index"] = fragment_index
        super().__init__(message, details=details, **kwargs)


class ExhaustedRetriesError(GenerationError):
    """Retry bound reached without a successful attempt."""

    def __init__(
        self,
        message: str = "Retries exhausted",
        attempts: Optional[int] = None,
        last_error: Optional[Exception] = None,
        **kwargs: Any,
    ):
        details = kwargs.pop("details", {})
        if attempts is not None:
            details["attempts"] = attempts
        if last_error is not None:
            details["last_error"] = str(last_error)
        kwargs.setdefault("cause", last_error)
        super().__init__(message, details=details, **kwargs)
        self.attempts = attempts
        self.last_error = last_error


class TotalFailureError(GenerationError):
    """A whole batch produced zero usable output."""

    def __init__(
        self,
        message: str = "No output was produced",
        channel: Optional[str] = None,
        **kwargs: Any,
    ):
        details = kwargs.pop("details", {})
        if channel:
            details["channel"] = channel
        super().__init__(message, details=details, **kwargs)


class ScriptGenerationError(GenerationError):
    """Failed to generate a script."""

    def __init__(
        self,
        message: str = "Failed to generate script",
        section: Optional[int] = None,
        **kwargs: Any,
    ):
        details = kwargs.pop("details", {})
        if section is not None:
            details["section"] = section
        super().__init__(message, details=details, **kwargs)


class AudioGenerationError(GenerationError):
    """Failed to generate audio."""

    def __init__(
        self,
        message: str = "Failed to generate audio",
        chunk_index: Optional[int] = None,
        **kwargs: Any,
    ):
        details = kwargs.pop("details", {})
        if chunk_index is not None:
            details["chunk_index"] = chunk_index
        super().__init__(message, details=details, **kwargs)


class ImageGenerationError(GenerationError):
    """Failed to generate images."""

    def __init__(
        self,
        message: str = "Failed to generate images",
        prompt_index: Optional[int] = None,
        **kwargs: Any,
    ):
        details = kwargs.pop("details", {})
        if prompt_index is not None:
            details["prompt_index"] = prompt_index
        super().__init__(message, details=details, **kwargs)


class StorageError(GenerationError):
    """Failed to store, read or delete an artifact."""

    def __init__(
        self,
        message: str = "Storage operation failed",
        storage_type: Optional[str] = None,
        file_path: Optional[str] = None,
        **kwargs: Any,
    ):
        details = kwargs.pop("details", {})
        if storage_type:
            details["storage_type"] = storage_type
        if file_path:
            details["file_path"] = file_path
        super().__init__(message, details=details, **kwargs)


class ConfigurationError(GenerationError):
    """Invalid or missing configuration."""

    def __init__(
        self,
        message: str = "Configuration error",
        missing_key: Optional[str] = None,
        **kwargs: Any,
    ):
        details = kwargs.pop("details", {})
        if missing_key:
            details["missing_key"] = missing_key
        super().__init__(message, details=details, **kwargs)
