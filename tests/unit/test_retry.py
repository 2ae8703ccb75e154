"""Tests for retry classification and BackoffRetrier."""

import asyncio

import pytest

from scriptcast.exceptions import (
    ExhaustedRetriesError,
    MalformedResponseError,
    QuotaExceededError,
    RemoteServiceError,
    TransientOverloadError,
)
from scriptcast.models.enums import Channel, FailureKind
from scriptcast.services.progress import ProgressEmitter
from scriptcast.utils.retry import (
    BackoffRetrier,
    RetryPolicy,
    classify_failure,
    failure_kind_of,
    parse_retry_delay,
)

RETRY_INFO = {
    "@type": "type.googleapis.com/google.rpc.RetryInfo",
    "retryDelay": "56s",
}


class FlakyOperation:
    """Fails with the given errors, then returns ``result``."""

    def __init__(self, errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


class TestRetryPolicy:
    """Test suite for RetryPolicy."""

    def test_backoff_doubles_from_base(self):
        """Delays follow base * 2**attempt."""
        policy = RetryPolicy(max_attempts=5, base_delay=2.0, cap_delay=120.0)
        assert [policy.backoff_delay(a) for a in range(5)] == [2.0, 4.0, 8.0, 16.0, 32.0]

    def test_backoff_is_capped(self):
        """Delays never exceed the cap."""
        policy = RetryPolicy(base_delay=2.0, cap_delay=60.0)
        assert policy.backoff_delay(10) == 60.0

    def test_from_settings_uses_channel_cap(self, settings):
        """Audio uses the 120s cap, images and scripts the 60s cap."""
        assert RetryPolicy.from_settings(settings, Channel.AUDIO).cap_delay == 120.0
        assert RetryPolicy.from_settings(settings, Channel.IMAGE).cap_delay == 60.0
        assert RetryPolicy.from_settings(settings, Channel.SCRIPT).max_attempts == 5


class TestClassification:
    """Test suite for failure classification and retry hints."""

    def test_taxonomy_errors(self):
        """Each taxonomy error maps to its failure kind."""
        assert classify_failure(TransientOverloadError()) is FailureKind.OVERLOADED
        assert classify_failure(QuotaExceededError()) is FailureKind.RATE_LIMITED
        assert classify_failure(MalformedResponseError()) is FailureKind.MALFORMED
        assert classify_failure(RemoteServiceError(status_code=400)) is FailureKind.OTHER
        assert classify_failure(ValueError("boom")) is FailureKind.OTHER

    def test_untranslated_status_codes(self):
        """Foreign exceptions carrying a 503/429 code are still classified."""

        class SdkError(Exception):
            def __init__(self, code):
                super().__init__(f"status {code}")
                self.code = code

        assert classify_failure(SdkError(503)) is FailureKind.OVERLOADED
        assert classify_failure(SdkError(429)) is FailureKind.RATE_LIMITED
        assert classify_failure(SdkError(500)) is FailureKind.OTHER

    def test_parse_retry_delay_from_details_list(self):
        """The RetryInfo entry's retryDelay is read in seconds."""
        assert parse_retry_delay([{"@type": "other"}, RETRY_INFO]) == 56.0

    def test_parse_retry_delay_from_error_payload(self):
        """Full error payloads are unwrapped."""
        payload = {"error": {"code": 429, "details": [RETRY_INFO]}}
        assert parse_retry_delay(payload) == 56.0

    def test_parse_retry_delay_absent(self):
        """Missing or unparseable hints yield None."""
        assert parse_retry_delay(None) is None
        assert parse_retry_delay([{"@type": RETRY_INFO["@type"], "retryDelay": "soon"}]) is None

    def test_failure_kind_of_looks_through_exhausted(self):
        """The kind of an exhausted run is the kind of its last failure."""
        exhausted = ExhaustedRetriesError(attempts=6, last_error=TransientOverloadError())
        assert failure_kind_of(exhausted) is FailureKind.OVERLOADED


class TestBackoffRetrier:
    """Test suite for BackoffRetrier."""

    @pytest.fixture
    def retrier(self, retrier_factory) -> BackoffRetrier:
        """Audio-channel retrier on the fake clock."""
        return retrier_factory(Channel.AUDIO)

    async def test_success_after_overloads(self, retrier, fake_clock):
        """Overloads are retried with doubling delays."""
        operation = FlakyOperation([TransientOverloadError(), TransientOverloadError()])

        assert await retrier.execute(operation) == "ok"
        assert operation.calls == 3
        assert fake_clock.sleeps == [2.0, 4.0]

    async def test_rate_limit_prefers_hinted_delay(self, retrier, fake_clock):
        """A 429 with a retry hint waits exactly the hinted delay."""
        operation = FlakyOperation([QuotaExceededError(retry_after=56.0)])

        await retrier.execute(operation)

        assert fake_clock.sleeps == [56.0]

    async def test_rate_limit_without_hint_uses_backoff(self, retrier, fake_clock):
        """A 429 without a hint falls back to the exponential schedule."""
        operation = FlakyOperation([QuotaExceededError(), QuotaExceededError()])

        await retrier.execute(operation)

        assert fake_clock.sleeps == [2.0, 4.0]

    async def test_non_retryable_propagates_immediately(self, retrier, fake_clock):
        """Errors outside the retryable kinds are not retried."""
        operation = FlakyOperation([RemoteServiceError(status_code=400)])

        with pytest.raises(RemoteServiceError):
            await retrier.execute(operation)

        assert operation.calls == 1
        assert fake_clock.sleeps == []

    async def test_exhaustion_after_bound(self, retrier_factory, fake_clock):
        """At most max_attempts + 1 attempts are made before giving up."""
        retrier = retrier_factory(Channel.AUDIO, max_attempts=5)
        operation = FlakyOperation([TransientOverloadError() for _ in range(10)])

        with pytest.raises(ExhaustedRetriesError) as exc_info:
            await retrier.execute(operation)

        assert operation.calls == 6
        assert exc_info.value.attempts == 6
        assert isinstance(exc_info.value.last_error, TransientOverloadError)
        assert fake_clock.sleeps == [2.0, 4.0, 8.0, 16.0, 32.0]

    async def test_cap_applies_to_long_schedules(self, retrier_factory, fake_clock):
        """Late retries wait the cap, not the raw exponential."""
        retrier = retrier_factory(Channel.IMAGE, max_attempts=7)
        operation = FlakyOperation([TransientOverloadError() for _ in range(7)])

        await retrier.execute(operation)

        assert fake_clock.sleeps == [2.0, 4.0, 8.0, 16.0, 32.0, 60.0, 60.0]

    async def test_malformed_responses_are_retried(self, retrier, fake_clock):
        """Empty replies retry on the same schedule."""
        operation = FlakyOperation([MalformedResponseError()])

        assert await retrier.execute(operation) == "ok"
        assert fake_clock.sleeps == [2.0]

    async def test_retry_events_emitted(self, retrier, listener):
        """Each scheduled retry produces one retry event."""
        emitter = ProgressEmitter(Channel.AUDIO, listener)
        operation = FlakyOperation([TransientOverloadError(), QuotaExceededError(retry_after=5)])

        await retrier.execute(operation, label="Audio chunk 1", emitter=emitter)

        retries = listener.of_type("retry")
        assert [(e.attempt, e.delay_seconds, e.failure_kind) for e in retries] == [
            (1, 2.0, "overloaded"),
            (2, 5.0, "rate_limited"),
        ]
        assert all(e.max_attempts == 6 for e in retries)

    async def test_cancellation_is_not_retried(self, retrier):
        """CancelledError propagates unchanged."""
        operation = FlakyOperation([asyncio.CancelledError()])

        with pytest.raises(asyncio.CancelledError):
            await retrier.execute(operation)

        assert operation.calls == 1
