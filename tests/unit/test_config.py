"""Tests for Settings."""

from scriptcast.config import Settings


class TestSettings:
    """Test suite for Settings."""

    def test_defaults(self):
        """Defaults match the service's documented limits."""
        settings = Settings(gemini_api_key="k")

        assert settings.script_section_count == 15
        assert settings.audio_max_chunk_size == 3000
        assert settings.audio_rate_limit_requests == 10
        assert settings.image_rate_limit_requests == 15
        assert settings.retry_max_attempts == 5
        assert settings.audio_output_filename == "COMPLETE_AUDIO.wav"

    def test_image_key_falls_back(self):
        """Without a separate image token the main key is used."""
        assert Settings(gemini_api_key="main").image_api_key == "main"
        assert Settings(gemini_api_key="main", gemini_image_api_key="img").image_api_key == "img"

    def test_environment_overrides(self, monkeypatch):
        """Environment variables override defaults."""
        monkeypatch.setenv("AUDIO_VOICE_NAME", "Kore")
        monkeypatch.setenv("SCRIPT_SECTION_COUNT", "4")

        settings = Settings()

        assert settings.audio_voice_name == "Kore"
        assert settings.script_section_count == 4
