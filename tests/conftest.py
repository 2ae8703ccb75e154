"""Pytest fixtures for generation service tests."""

import dataclasses
import struct
from typing import Any, Optional, Sequence

import pytest

from scriptcast.config import Settings
from scriptcast.exceptions import StorageError
from scriptcast.models.content import ConversationTurn
from scriptcast.models.enums import Channel
from scriptcast.services.remote.base import AudioPart, GenerationClient
from scriptcast.services.storage import ArtifactStorage
from scriptcast.utils.rate_limiter import RateLimiter
from scriptcast.utils.retry import BackoffRetrier, RetryPolicy


def make_wav(data: bytes, channels: int = 1, sample_rate: int = 24000, bits_per_sample: int = 16) -> bytes:
    """Build a canonical 44-byte-header WAV container around ``data``."""
    block_align = channels * bits_per_sample // 8
    return struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF",
        36 + len(data),
        b"WAVE",
        b"fmt ",
        16,
        1,
        channels,
        sample_rate,
        sample_rate * block_align,
        block_align,
        bits_per_sample,
        b"data",
        len(data),
    ) + data


class FakeClock:
    """Monotonic clock whose sleep advances time instantly."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class StubClient(GenerationClient):
    """
    Scripted remote service.

    Each queue holds the outcome of successive calls: a value is returned,
    an exception instance is raised. An exhausted queue repeats ``default``.
    """

    def __init__(
        self,
        text: Optional[list[Any]] = None,
        audio: Optional[list[Any]] = None,
        images: Optional[list[Any]] = None,
    ):
        self.text_queue = list(text or [])
        self.audio_queue = list(audio or [])
        self.image_queue = list(images or [])
        self.text_calls: list[tuple[list[ConversationTurn], bool]] = []
        self.audio_calls: list[str] = []
        self.image_calls: list[tuple[str, int]] = []

    @staticmethod
    def _next(queue: list[Any], default: Any) -> Any:
        outcome = queue.pop(0) if queue else default
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def generate_text(self, turns: Sequence[ConversationTurn], grounded: bool = True) -> Optional[str]:
        self.text_calls.append((list(turns), grounded))
        return self._next(self.text_queue, "reply")

    async def stream_audio(self, text: str):
        self.audio_calls.append(text)
        parts = self._next(self.audio_queue, [AudioPart("audio/wav", make_wav(b"\x01\x00"))])
        for part in parts:
            yield part

    async def generate_images(self, prompt: str, number_of_images: int = 1) -> list[bytes]:
        self.image_calls.append((prompt, number_of_images))
        return self._next(self.image_queue, [b"\xff\xd8image"] * number_of_images)


class InMemoryStorage(ArtifactStorage):
    """Artifact storage backed by a dict."""

    storage_type = "memory"

    def __init__(self):
        self.files: dict[str, bytes] = {}
        self.deleted: list[str] = []
        self.fail_writes = False

    async def write(self, path: str, data: bytes) -> str:
        if self.fail_writes:
            raise StorageError(message="disk full", storage_type=self.storage_type, file_path=path)
        self.files[path] = bytes(data)
        return path

    async def read(self, path: str) -> bytes:
        if path not in self.files:
            raise StorageError(message="not found", storage_type=self.storage_type, file_path=path)
        return self.files[path]

    async def delete(self, path: str) -> None:
        self.files.pop(path, None)
        self.deleted.append(path)


class RecordingListener:
    """Progress listener that keeps every event it receives."""

    def __init__(self):
        self.events = []

    def __call__(self, event) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> list:
        return [e for e in self.events if e.type == event_type]


@pytest.fixture
def settings() -> Settings:
    """Test settings with mock API keys and no pacing delays."""
    return Settings(
        gemini_api_key="test-gemini-key",
        storage_type="local",
        local_storage_path="/tmp/test-scriptcast",
        script_section_count=3,
        script_section_pacing=0,
        audio_chunk_pacing=0,
        image_prompt_pacing=0,
        image_overload_cooldown=60,
        debug=True,
    )


@pytest.fixture
def fake_clock() -> FakeClock:
    """Deterministic clock with an instant sleep."""
    return FakeClock()


@pytest.fixture
def storage() -> InMemoryStorage:
    """In-memory artifact storage."""
    return InMemoryStorage()


@pytest.fixture
def listener() -> RecordingListener:
    """Listener recording progress events."""
    return RecordingListener()


@pytest.fixture
def stub_client_factory():
    """Build scripted stub clients."""
    return StubClient


@pytest.fixture
def wav_factory():
    """Build WAV containers."""
    return make_wav


@pytest.fixture
def retrier_factory(settings: Settings, fake_clock: FakeClock):
    """Build retriers for a channel that sleep on the fake clock."""

    def factory(channel: Channel = Channel.SCRIPT, **overrides: Any) -> BackoffRetrier:
        policy = RetryPolicy.from_settings(settings, channel)
        if overrides:
            policy = dataclasses.replace(policy, **overrides)
        return BackoffRetrier(policy, name=channel.value, sleep=fake_clock.sleep)

    return factory


@pytest.fixture
def limiter_factory(fake_clock: FakeClock):
    """Build rate limiters driven by the fake clock."""

    def factory(max_requests: int = 100, window: float = 60.0, safety_margin: float = 1.0) -> RateLimiter:
        return RateLimiter(
            max_requests=max_requests,
            window=window,
            safety_margin=safety_margin,
            clock=fake_clock,
            sleep=fake_clock.sleep,
        )

    return factory
