"""Minimal RIFF/WAVE container handling for generated PCM audio.

Layout reference: http://soundfile.sapp.org/doc/WaveFormat
"""

import base64
import logging
import struct
from dataclasses import dataclass
from typing import Optional, Sequence, Union

from scriptcast.exceptions import FormatMismatchError

logger = logging.getLogger(__name__)

HEADER_SIZE = 44

# RIFF header, 16-byte PCM fmt subchunk, data subchunk header
_HEADER_STRUCT = struct.Struct("<4sI4s4sIHHIIHH4sI")

MIME_EXTENSIONS = {
    "audio/wav": "wav",
    "audio/wave": "wav",
    "audio/x-wav": "wav",
    "audio/mpeg": "mp3",
    "audio/mp3": "mp3",
    "audio/ogg": "ogg",
    "audio/flac": "flac",
    "audio/aac": "aac",
    "audio/webm": "webm",
}


@dataclass(frozen=True)
class WavFormat:
    """PCM format shared by every fragment of one join."""

    channels: int = 1
    sample_rate: int = 24000
    bits_per_sample: int = 16

    @property
    def block_align(self) -> int:
        return self.channels * self.bits_per_sample // 8

    @property
    def byte_rate(self) -> int:
        return self.sample_rate * self.channels * self.bits_per_sample // 8


def file_extension(mime_type: str) -> Optional[str]:
    """
    Container extension for a MIME type, or None when there is no direct match.

    Parameters such as ``;rate=24000`` are ignored.
    """
    file_type = (mime_type or "").split(";")[0].strip().lower()
    return MIME_EXTENSIONS.get(file_type)


def parse_mime_type(mime_type: str) -> WavFormat:
    """
    Read PCM parameters from a MIME type such as ``audio/L16;codec=pcm;rate=24000``.

    Bit depth comes from an ``L<N>`` subtype, sample rate from a ``rate=``
    parameter; anything absent keeps the 1 channel / 24000 Hz / 16 bit default.
    """
    file_type, *params = [part.strip() for part in (mime_type or "").split(";")]
    _, _, subtype = file_type.partition("/")

    channels, sample_rate, bits_per_sample = 1, 24000, 16

    if subtype.startswith("L"):
        try:
            bits_per_sample = int(subtype[1:])
        except ValueError:
            pass

    for param in params:
        key, _, value = param.partition("=")
        if key.strip() == "rate":
            try:
                sample_rate = int(value.strip())
            except ValueError:
                pass

    return WavFormat(channels=channels, sample_rate=sample_rate, bits_per_sample=bits_per_sample)


def build_header(data_length: int, wav_format: WavFormat) -> bytes:
    """Build the canonical 44-byte header for ``data_length`` bytes of PCM."""
    return _HEADER_STRUCT.pack(
        b"RIFF",
        36 + data_length,
        b"WAVE",
        b"fmt ",
        16,  # PCM fmt subchunk size
        1,  # PCM
        wav_format.channels,
        wav_format.sample_rate,
        wav_format.byte_rate,
        wav_format.block_align,
        wav_format.bits_per_sample,
        b"data",
        data_length,
    )


def parse_format(fragment: bytes) -> WavFormat:
    """
    Read channels, sample rate and bit depth from a fragment's header.

    Raises:
        FormatMismatchError: If the fragment has no readable WAV header.
    """
    if len(fragment) < HEADER_SIZE or fragment[0:4] != b"RIFF" or fragment[8:12] != b"WAVE":
        raise FormatMismatchError("Could not extract WAV format information")

    (channels,) = struct.unpack_from("<H", fragment, 22)
    (sample_rate,) = struct.unpack_from("<I", fragment, 24)
    (bits_per_sample,) = struct.unpack_from("<H", fragment, 34)
    return WavFormat(channels=channels, sample_rate=sample_rate, bits_per_sample=bits_per_sample)


def encode_raw(samples: Union[bytes, str], mime_type: str) -> bytes:
    """
    Wrap raw PCM samples in a WAV header built from the MIME type parameters.

    ``samples`` may be raw bytes or their base64 text form.
    """
    data = base64.b64decode(samples) if isinstance(samples, str) else bytes(samples)
    return build_header(len(data), parse_mime_type(mime_type)) + data


def join(fragments: Sequence[bytes]) -> bytes:
    """
    Concatenate WAV fragments into one container.

    A single fragment is returned verbatim. Otherwise the first fragment's
    format is canonical, every fragment's 44-byte header is stripped, the
    sample data is concatenated in input order and one new header is built
    for the combined length.

    Raises:
        ValueError: If no fragments are given.
        FormatMismatchError: If a fragment's format is unreadable or differs.
    """
    if not fragments:
        raise ValueError("join requires at least one fragment")
    if len(fragments) == 1:
        return bytes(fragments[0])

    wav_format = parse_format(fragments[0])
    data_parts = []
    for index, fragment in enumerate(fragments):
        if index > 0:
            try:
                fragment_format = parse_format(fragment)
            except FormatMismatchError as e:
                raise FormatMismatchError(
                    f"Fragment {index} has no readable WAV header",
                    fragment_index=index,
                    cause=e,
                )
            if fragment_format != wav_format:
                raise FormatMismatchError(
                    f"Fragment {index} format {fragment_format} differs from {wav_format}",
                    fragment_index=index,
                )
        data_parts.append(data_region(fragment))

    data = b"".join(data_parts)
    logger.debug(f"Joined {len(fragments)} fragments into {len(data)} bytes of PCM")
    return build_header(len(data), wav_format) + data


def data_region(container: bytes) -> bytes:
    """Sample data of a canonical 44-byte-header container."""
    return container[HEADER_SIZE:]
