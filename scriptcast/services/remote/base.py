"""Capability interface of the remote generation service."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import AsyncIterator, Optional, Sequence

from scriptcast.models.content import ConversationTurn


@dataclass
class AudioPart:
    """One inline audio payload from a response stream."""

    mime_type: str
    data: bytes = field(repr=False)


class GenerationClient(ABC):
    """
    Abstract remote generation service.

    Implementations translate transport failures into the engine's error
    taxonomy (TransientOverloadError, QuotaExceededError, RemoteServiceError)
    so retry classification never depends on a vendor SDK.
    """

    @abstractmethod
    async def generate_text(
        self,
        turns: Sequence[ConversationTurn],
        grounded: bool = True,
    ) -> Optional[str]:
        """
        Generate the next responder turn for a conversation.

        Args:
            turns: Full conversation history, oldest first.
            grounded: Enable the reasoning and search tools used for scripts.

        Returns:
            Stripped response text, or None when the response carried none.
        """

    @abstractmethod
    def stream_audio(self, text: str) -> AsyncIterator[AudioPart]:
        """Stream speech for ``text`` as incremental inline audio parts."""

    @abstractmethod
    async def generate_images(self, prompt: str, number_of_images: int = 1) -> list[bytes]:
        """Generate image artifacts for one prompt (may return fewer than requested)."""
