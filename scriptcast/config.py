"""Application configuration from environment variables."""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_workers: int = 4
    debug: bool = False

    # Gemini API
    gemini_api_key: str = ""
    gemini_image_api_key: Optional[str] = Field(
        default=None,
        description="Separate token for image generation (falls back to gemini_api_key)",
    )

    # Models
    script_model: str = "gemini-2.5-pro"
    audio_model: str = "gemini-2.5-pro-preview-tts"
    image_model: str = "models/imagen-3.0-generate-002"

    # Script generation
    script_section_count: int = Field(default=15, ge=1)
    script_continuation_marker: str = "CONTINUE"
    script_section_delimiter: str = "\n\n\n"
    script_thinking_budget: int = -1  # -1 = dynamic thinking
    script_use_search: bool = True
    script_section_pacing: float = 1.0  # seconds
    script_filename: str = "script.txt"

    # Audio generation
    audio_voice_name: str = "Enceladus"
    audio_temperature: float = 1.0
    audio_max_chunk_size: int = Field(default=3000, ge=1)
    audio_chunk_pacing: float = Field(
        default=3.0,
        description="Flat delay after every successful audio chunk, on top of rate limiting",
    )
    audio_output_filename: str = "COMPLETE_AUDIO.wav"
    audio_cleanup_fragments: bool = True

    # Image generation
    images_per_prompt: int = Field(default=1, ge=1)
    image_output_mime_type: str = "image/jpeg"
    image_aspect_ratio: str = "16:9"
    image_prompt_pacing: float = 3.0  # seconds
    image_overload_cooldown: float = 60.0  # seconds

    # Prompt templates
    script_prompt_template: str = "[TOPIC]"
    image_prompt_template: str = (
        "Write one detailed image generation prompt per line for the "
        "following script:\n\n[Replace Script]"
    )

    # Rate Limiting (per channel)
    script_rate_limit_requests: int = 15
    script_rate_limit_window: float = 60.0  # seconds
    audio_rate_limit_requests: int = 10
    audio_rate_limit_window: float = 60.0
    image_rate_limit_requests: int = 15
    image_rate_limit_window: float = 60.0
    rate_limit_safety_margin: float = 1.0

    # Retry Configuration
    retry_max_attempts: int = 5
    retry_base_delay: float = 2.0
    script_retry_cap_delay: float = 60.0
    audio_retry_cap_delay: float = 120.0
    image_retry_cap_delay: float = 60.0

    # Storage
    storage_type: str = "local"  # "s3" or "local"
    local_storage_path: str = "/tmp/scriptcast"
    s3_bucket_name: Optional[str] = None
    s3_region: str = "us-east-1"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def image_api_key(self) -> str:
        """Token used for the image channel."""
        return self.gemini_image_api_key or self.gemini_api_key


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
