"""Audio generation and assembly."""

from . import wav_codec
from .audio_generator import AudioGenerator
from .wav_codec import WavFormat

__all__ = ["AudioGenerator", "WavFormat", "wav_codec"]
