"""Retry logic with exponential backoff for remote generation calls."""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, TypeVar

from scriptcast.exceptions import (
    ExhaustedRetriesError,
    MalformedResponseError,
    QuotaExceededError,
    TransientOverloadError,
)
from scriptcast.models.enums import Channel, FailureKind

if TYPE_CHECKING:
    from scriptcast.config import Settings
    from scriptcast.services.progress import ProgressEmitter

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRY_INFO_TYPE = "type.googleapis.com/google.rpc.RetryInfo"
_DELAY_PATTERN = re.compile(r"(\d+(?:\.\d+)?)s")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounds and schedule for retrying one unit of work.

    ``max_attempts`` counts retries after the initial call, so an operation
    runs at most ``max_attempts + 1`` times.
    """

    max_attempts: int = 5
    base_delay: float = 2.0
    cap_delay: float = 120.0

    def backoff_delay(self, attempt: int) -> float:
        """Delay before retry number ``attempt + 1`` (attempt is 0-based)."""
        return min(self.base_delay * (2**attempt), self.cap_delay)

    @classmethod
    def from_settings(cls, settings: "Settings", channel: Channel) -> "RetryPolicy":
        caps = {
            Channel.SCRIPT: settings.script_retry_cap_delay,
            Channel.AUDIO: settings.audio_retry_cap_delay,
            Channel.IMAGE: settings.image_retry_cap_delay,
        }
        return cls(
            max_attempts=settings.retry_max_attempts,
            base_delay=settings.retry_base_delay,
            cap_delay=caps[channel],
        )


def classify_failure(exc: BaseException) -> FailureKind:
    """Map an exception to its retry classification."""
    if isinstance(exc, TransientOverloadError):
        return FailureKind.OVERLOADED
    if isinstance(exc, QuotaExceededError):
        return FailureKind.RATE_LIMITED
    if isinstance(exc, MalformedResponseError):
        return FailureKind.MALFORMED

    # Untranslated SDK errors carry the HTTP status as ``code`` or ``status_code``
    for attr in ("status_code", "code", "status"):
        status = getattr(exc, attr, None)
        if status == 503:
            return FailureKind.OVERLOADED
        if status == 429:
            return FailureKind.RATE_LIMITED
    return FailureKind.OTHER


def parse_retry_delay(details: Any) -> Optional[float]:
    """
    Extract the server-suggested delay from an error payload.

    Accepts the raw details list, or a payload shaped like
    ``{"error": {"details": [...]}}``. The hint is a ``google.rpc.RetryInfo``
    entry whose ``retryDelay`` reads like ``"56s"``.
    """
    if isinstance(details, dict):
        if "error" in details and isinstance(details["error"], dict):
            details = details["error"]
        details = details.get("details")
    if not isinstance(details, list):
        return None

    for detail in details:
        if not isinstance(detail, dict) or detail.get("@type") != RETRY_INFO_TYPE:
            continue
        match = _DELAY_PATTERN.search(str(detail.get("retryDelay", "")))
        if match:
            return float(match.group(1))
    return None


def suggested_delay(exc: BaseException) -> Optional[float]:
    """Server-suggested delay carried by a rate-limit failure, if any."""
    retry_after = getattr(exc, "retry_after", None)
    if retry_after is not None:
        return float(retry_after)
    return parse_retry_delay(getattr(exc, "details", None))


class BackoffRetrier:
    """
    Re-invokes a failing remote call with exponential backoff.

    Overload failures wait ``min(base * 2**attempt, cap)``. Rate-limit
    failures prefer the delay suggested by the service and fall back to the
    same formula. Malformed responses are retried on the same schedule.
    Anything else propagates immediately. When the bound is reached an
    ExhaustedRetriesError wraps the last failure.
    """

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        name: str = "default",
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ):
        self.policy = policy or RetryPolicy()
        self.name = name
        self._sleep = sleep or asyncio.sleep

    def delay_for(self, exc: BaseException, kind: FailureKind, attempt: int, policy: RetryPolicy) -> float:
        if kind is FailureKind.RATE_LIMITED:
            hinted = suggested_delay(exc)
            if hinted is not None:
                return hinted
        return policy.backoff_delay(attempt)

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        policy: Optional[RetryPolicy] = None,
        label: str = "request",
        emitter: Optional["ProgressEmitter"] = None,
    ) -> T:
        """
        Run ``operation`` until it succeeds or the policy is exhausted.

        Args:
            operation: Zero-argument coroutine function performing one attempt.
            policy: Overrides the retrier's default policy for this call.
            label: Human-readable name of the unit of work, for logs and events.
            emitter: Receives one retry event per scheduled retry.

        Returns:
            The operation's result.

        Raises:
            ExhaustedRetriesError: If every allowed attempt failed retryably.
            Exception: The original error when it is not retryable.
        """
        policy = policy or self.policy
        total_attempts = policy.max_attempts + 1

        for attempt in range(total_attempts):
            try:
                return await operation()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                kind = classify_failure(e)
                if not kind.is_retryable:
                    raise

                if attempt >= policy.max_attempts:
                    logger.error(
                        f"{self.name}: all {total_attempts} attempts failed for {label}: {e}"
                    )
                    raise ExhaustedRetriesError(
                        message=f"{label} failed after {total_attempts} attempts: {e}",
                        attempts=total_attempts,
                        last_error=e,
                        details={"failure_kind": kind.value},
                    )

                delay = self.delay_for(e, kind, attempt, policy)
                logger.warning(
                    f"{self.name}: {label} {kind.value} "
                    f"(attempt {attempt + 1}/{total_attempts}). Retrying in {delay:.1f}s..."
                )
                if emitter is not None:
                    emitter.retry(attempt + 1, total_attempts, delay, kind, label=label)
                await self._sleep(delay)

        raise RuntimeError(f"Unexpected state in retry logic for {label}")


def failure_kind_of(exc: BaseException) -> FailureKind:
    """Classification of the failure behind ``exc``, looking through exhausted retries."""
    if isinstance(exc, ExhaustedRetriesError) and exc.last_error is not None:
        return classify_failure(exc.last_error)
    return classify_failure(exc)
