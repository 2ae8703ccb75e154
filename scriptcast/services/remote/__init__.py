"""Remote generation service boundary."""

from .base import AudioPart, GenerationClient
from .gemini_client import GeminiClient, translate_api_error

__all__ = ["AudioPart", "GenerationClient", "GeminiClient", "translate_api_error"]
