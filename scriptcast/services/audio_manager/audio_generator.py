"""Chunked speech generation and WAV assembly."""

import asyncio
import logging
from typing import Optional

from scriptcast.config import Settings, get_settings
from scriptcast.exceptions import (
    AudioGenerationError,
    MalformedResponseError,
    StorageError,
    TotalFailureError,
)
from scriptcast.models.content import AudioResult, Chunk
from scriptcast.models.enums import Channel
from scriptcast.services.audio_manager import wav_codec
from scriptcast.services.progress import ProgressEmitter
from scriptcast.services.remote.base import AudioPart, GenerationClient
from scriptcast.services.script_engine.text_chunker import chunk_text
from scriptcast.services.storage import ArtifactStorage, artifact_path
from scriptcast.utils.rate_limiter import RateLimiter
from scriptcast.utils.retry import BackoffRetrier, RetryPolicy, failure_kind_of

logger = logging.getLogger(__name__)


class AudioGenerator:
    """
    Converts script text into one assembled WAV file.

    Workflow:
    1. Split the text into sentence-aligned chunks
    2. Stream speech for each chunk (rate limited, retried)
    3. Persist every streamed part as a fragment file
    4. Join the fragments into COMPLETE_AUDIO.wav and clean them up

    A chunk that still fails after retries is reported and skipped; the run
    fails only when no fragment at all was produced.
    """

    def __init__(
        self,
        client: GenerationClient,
        storage: ArtifactStorage,
        settings: Optional[Settings] = None,
        rate_limiter: Optional[RateLimiter] = None,
        retrier: Optional[BackoffRetrier] = None,
        sleep=None,
    ):
        self.settings = settings or get_settings()
        self.client = client
        self.storage = storage
        self.max_chunk_size = self.settings.audio_max_chunk_size
        self.chunk_pacing = self.settings.audio_chunk_pacing

        self.rate_limiter = rate_limiter or RateLimiter(
            max_requests=self.settings.audio_rate_limit_requests,
            window=self.settings.audio_rate_limit_window,
            safety_margin=self.settings.rate_limit_safety_margin,
            name="audio",
        )
        self.retrier = retrier or BackoffRetrier(
            RetryPolicy.from_settings(self.settings, Channel.AUDIO),
            name="audio",
        )
        self._sleep = sleep or asyncio.sleep

    async def generate(
        self,
        content: str,
        output_dir: Optional[str] = None,
        section_index: int = 0,
        emitter: Optional[ProgressEmitter] = None,
    ) -> AudioResult:
        """
        Generate speech for ``content`` and assemble it into one file.

        Args:
            content: Text to speak.
            output_dir: Storage directory for fragments and the assembled file.
            section_index: Section number encoded in fragment filenames.
            emitter: Receives audio-chunk, retry, error and completion events.

        Returns:
            AudioResult describing the assembled file.

        Raises:
            TotalFailureError: If no chunk produced any audio.
            FormatMismatchError: If the fragments cannot be joined.
        """
        emitter = emitter or ProgressEmitter(Channel.AUDIO)
        emitter.progress("Starting audio generation...")

        chunks = chunk_text(content, self.max_chunk_size)
        total = len(chunks)
        emitter.progress(f"Split into {total} chunks")

        fragment_paths: list[str] = []
        failed_chunks: list[int] = []

        for chunk in chunks:
            position = chunk.index + 1
            emitter.audio_chunk(position, total, f"Generating audio for chunk {position}/{total}")
            try:
                fragment_paths.extend(
                    await self._generate_chunk(chunk, section_index, output_dir, emitter)
                )
            except Exception as e:
                logger.error(f"Error generating audio for chunk {chunk.index}: {e}")
                failed_chunks.append(chunk.index)
                kind = failure_kind_of(e)
                error = AudioGenerationError(
                    message=f"Chunk {position}/{total} failed: {e}",
                    chunk_index=chunk.index,
                    details={"failure_kind": kind.value},
                    cause=e,
                )
                emitter.error(
                    f"Warning: Failed to generate audio for chunk {position}. "
                    "Continuing with remaining chunks...",
                    error=error,
                    failure_kind=kind,
                )

        if not fragment_paths:
            error = TotalFailureError(
                message="No audio chunks were successfully generated.",
                channel=Channel.AUDIO.value,
                details={"chunks": total},
            )
            emitter.error(f"Error: {error.message}", error=error, fatal=True)
            raise error

        try:
            output_path = await self._assemble(fragment_paths, output_dir)
        except Exception as e:
            emitter.error(f"Error: {e}", error=e, fatal=True)
            raise

        emitter.progress("Audio generation completed successfully!", output_path=output_path)

        return AudioResult(
            output_path=output_path,
            chunk_count=total,
            fragment_count=len(fragment_paths),
            failed_chunks=failed_chunks,
        )

    async def _generate_chunk(
        self,
        chunk: Chunk,
        section_index: int,
        output_dir: Optional[str],
        emitter: ProgressEmitter,
    ) -> list[str]:
        """Generate and persist the fragments of one chunk; returns storage paths."""

        async def attempt() -> list[AudioPart]:
            await self.rate_limiter.admit()
            parts = [part async for part in self.client.stream_audio(chunk.content) if part.data]
            if not parts:
                raise MalformedResponseError(
                    message=f"No audio data returned for chunk {chunk.index + 1}",
                    field="inline_data",
                )
            return parts

        parts = await self.retrier.execute(
            attempt,
            label=f"Audio chunk {chunk.index + 1}",
            emitter=emitter,
        )

        paths = []
        try:
            for fragment_index, part in enumerate(parts):
                extension = wav_codec.file_extension(part.mime_type)
                data = part.data
                if extension is None:
                    extension = "wav"
                    data = wav_codec.encode_raw(part.data, part.mime_type)

                filename = f"SECTION_{section_index}_CHUNK_{chunk.index}_{fragment_index}.{extension}"
                path = artifact_path(output_dir, filename)
                await self.storage.write(path, data)
                paths.append(path)
        except Exception:
            # A partly written chunk is never joined
            await self._discard(paths)
            raise

        if self.chunk_pacing > 0:
            await self._sleep(self.chunk_pacing)
        return paths

    async def _assemble(
        self,
        fragment_paths: list[str],
        output_dir: Optional[str],
    ) -> str:
        """Join fragments into the run's output file, then delete the fragments."""
        fragments = [await self.storage.read(path) for path in fragment_paths]
        assembled = wav_codec.join(fragments)

        output_path = await self.storage.write(
            artifact_path(output_dir, self.settings.audio_output_filename),
            assembled,
        )
        logger.info(f"Joined audio saved to: {output_path}")

        if self.settings.audio_cleanup_fragments:
            await self._discard(fragment_paths)
        return output_path

    async def _discard(self, paths: list[str]) -> None:
        for path in paths:
            try:
                await self.storage.delete(path)
            except StorageError as e:
                logger.warning(f"Could not clean up {path}: {e}")
