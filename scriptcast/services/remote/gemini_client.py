"""Google Gemini implementation of the generation client."""

import logging
from typing import Any, AsyncIterator, Optional, Sequence

from google import genai
from google.genai import errors, types

from scriptcast.config import Settings, get_settings
from scriptcast.exceptions import (
    ConfigurationError,
    QuotaExceededError,
    RemoteServiceError,
    TransientOverloadError,
)
from scriptcast.models.content import ConversationTurn
from scriptcast.services.remote.base import AudioPart, GenerationClient
from scriptcast.utils.retry import parse_retry_delay

logger = logging.getLogger(__name__)


def translate_api_error(error: Any) -> RemoteServiceError:
    """Map a Gemini API error onto the engine's error taxonomy."""
    code = getattr(error, "code", None)
    message = getattr(error, "message", None) or str(error)
    details = getattr(error, "details", None)

    if code == 503:
        return TransientOverloadError(message=f"Service overloaded: {message}", cause=error)
    if code == 429:
        return QuotaExceededError(
            message=f"Rate limit hit: {message}",
            retry_after=parse_retry_delay(details),
            cause=error,
        )
    return RemoteServiceError(message=f"Gemini API error: {message}", status_code=code, cause=error)


def extract_text(response: Any) -> Optional[str]:
    """Text of the first part of the first candidate, stripped."""
    candidates = getattr(response, "candidates", None)
    if not candidates:
        return None
    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None)
    if not parts:
        return None
    text = getattr(parts[0], "text", None)
    if not text:
        return None
    return text.strip() or None


def _first_inline_data(chunk: Any) -> Any:
    candidates = getattr(chunk, "candidates", None)
    if not candidates:
        return None
    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None)
    if not parts:
        return None
    return getattr(parts[0], "inline_data", None)


class GeminiClient(GenerationClient):
    """
    Talks to Gemini for script text, streamed speech and Imagen images.

    Uses the async surface of the google-genai SDK (``client.aio``).
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        api_key: Optional[str] = None,
        client: Optional[genai.Client] = None,
    ):
        self.settings = settings or get_settings()
        key = api_key if api_key is not None else self.settings.gemini_api_key

        if client is None and not key:
            raise ConfigurationError(
                message="Gemini API key is not configured",
                missing_key="gemini_api_key",
            )
        self.client = client or genai.Client(api_key=key)

    def _text_config(self, grounded: bool) -> types.GenerateContentConfig:
        if not grounded:
            return types.GenerateContentConfig(response_mime_type="text/plain")

        tools = None
        if self.settings.script_use_search:
            tools = [types.Tool(google_search=types.GoogleSearch())]
        return types.GenerateContentConfig(
            thinking_config=types.ThinkingConfig(
                thinking_budget=self.settings.script_thinking_budget,
            ),
            tools=tools,
            response_mime_type="text/plain",
        )

    def _speech_config(self) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            temperature=self.settings.audio_temperature,
            response_modalities=["audio"],
            speech_config=types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(
                        voice_name=self.settings.audio_voice_name,
                    )
                )
            ),
        )

    async def generate_text(
        self,
        turns: Sequence[ConversationTurn],
        grounded: bool = True,
    ) -> Optional[str]:
        contents = [
            types.Content(role=turn.role.value, parts=[types.Part.from_text(text=turn.content)])
            for turn in turns
        ]
        try:
            response = await self.client.aio.models.generate_content(
                model=self.settings.script_model,
                contents=contents,
                config=self._text_config(grounded),
            )
        except errors.APIError as e:
            raise translate_api_error(e)
        return extract_text(response)

    async def stream_audio(self, text: str) -> AsyncIterator[AudioPart]:
        contents = [types.Content(role="user", parts=[types.Part.from_text(text=text)])]
        try:
            stream = await self.client.aio.models.generate_content_stream(
                model=self.settings.audio_model,
                contents=contents,
                config=self._speech_config(),
            )
            async for chunk in stream:
                inline_data = _first_inline_data(chunk)
                if inline_data is None:
                    logger.debug("Skipping stream chunk without inline audio")
                    continue
                yield AudioPart(mime_type=inline_data.mime_type or "", data=inline_data.data or b"")
        except errors.APIError as e:
            raise translate_api_error(e)

    async def generate_images(self, prompt: str, number_of_images: int = 1) -> list[bytes]:
        try:
            result = await self.client.aio.models.generate_images(
                model=self.settings.image_model,
                prompt=prompt,
                config=types.GenerateImagesConfig(
                    number_of_images=number_of_images,
                    output_mime_type=self.settings.image_output_mime_type,
                    aspect_ratio=self.settings.image_aspect_ratio,
                    person_generation=types.PersonGeneration.ALLOW_ADULT,
                ),
            )
        except errors.APIError as e:
            raise translate_api_error(e)

        images = []
        for index, generated in enumerate(result.generated_images or []):
            image = getattr(generated, "image", None)
            if image is None or not image.image_bytes:
                logger.info(f"No valid image data for image {index + 1}")
                continue
            images.append(image.image_bytes)
        return images
