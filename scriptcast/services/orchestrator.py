"""Main orchestrator for script, audio and image generation runs."""

import asyncio
import logging
import posixpath
from typing import Awaitable, Optional, TypeVar

from scriptcast.config import Settings, get_settings
from scriptcast.models.content import (
    AudioResult,
    ImageBatchResult,
    ProductionResult,
    ScriptResult,
)
from scriptcast.models.enums import Channel
from scriptcast.services.audio_manager import AudioGenerator
from scriptcast.services.image_engine import ImageBatchGenerator
from scriptcast.services.progress import ProgressEmitter, ProgressListener
from scriptcast.services.remote import GeminiClient, GenerationClient
from scriptcast.services.script_engine import PromptTemplates, ScriptSequencer
from scriptcast.services.storage import ArtifactStorage, create_storage
from scriptcast.utils.rate_limiter import RateLimiter
from scriptcast.utils.retry import BackoffRetrier, RetryPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GenerationOrchestrator:
    """
    Orchestrates generation runs against the remote service.

    Each channel (script, audio, image) owns one RateLimiter and one
    BackoffRetrier for the orchestrator's lifetime; channels never share
    them, so concurrent audio and image runs do not interfere.

    Workflow for a full production:
    1. Expand the script template and sequence outline + sections
    2. Generate audio for the whole script
    3. Concurrently, generate images for each section in order
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        storage: Optional[ArtifactStorage] = None,
        script_client: Optional[GenerationClient] = None,
        audio_client: Optional[GenerationClient] = None,
        image_client: Optional[GenerationClient] = None,
        prompt_templates: Optional[PromptTemplates] = None,
        sleep=None,
    ):
        self.settings = settings or get_settings()
        self.storage = storage or create_storage(self.settings)
        self.prompt_templates = prompt_templates or PromptTemplates(self.settings)

        self._script_client = script_client
        self._audio_client = audio_client
        self._image_client = image_client
        self._sleep = sleep

        self.rate_limiters = {
            Channel.SCRIPT: RateLimiter(
                max_requests=self.settings.script_rate_limit_requests,
                window=self.settings.script_rate_limit_window,
                safety_margin=self.settings.rate_limit_safety_margin,
                name=Channel.SCRIPT.value,
                sleep=self._sleep,
            ),
            Channel.AUDIO: RateLimiter(
                max_requests=self.settings.audio_rate_limit_requests,
                window=self.settings.audio_rate_limit_window,
                safety_margin=self.settings.rate_limit_safety_margin,
                name=Channel.AUDIO.value,
                sleep=self._sleep,
            ),
            Channel.IMAGE: RateLimiter(
                max_requests=self.settings.image_rate_limit_requests,
                window=self.settings.image_rate_limit_window,
                safety_margin=self.settings.rate_limit_safety_margin,
                name=Channel.IMAGE.value,
                sleep=self._sleep,
            ),
        }
        self.retriers = {
            channel: BackoffRetrier(
                RetryPolicy.from_settings(self.settings, channel),
                name=channel.value,
                sleep=self._sleep,
            )
            for channel in Channel
        }

    # Clients are created on first use so a missing key only fails the run that needs it

    @property
    def script_client(self) -> GenerationClient:
        if self._script_client is None:
            self._script_client = GeminiClient(self.settings)
        return self._script_client

    @property
    def audio_client(self) -> GenerationClient:
        if self._audio_client is None:
            self._audio_client = GeminiClient(self.settings)
        return self._audio_client

    @property
    def image_client(self) -> GenerationClient:
        if self._image_client is None:
            self._image_client = GeminiClient(self.settings, api_key=self.settings.image_api_key)
        return self._image_client

    async def generate_script(
        self,
        topic: Optional[str] = None,
        prompt: Optional[str] = None,
        output_dir: Optional[str] = None,
        section_count: Optional[int] = None,
        listener: Optional[ProgressListener] = None,
    ) -> ScriptResult:
        """Generate a script from a topic (template-expanded) or a ready prompt."""
        if prompt is None:
            prompt = self.prompt_templates.build_script_prompt(topic or "")

        emitter = ProgressEmitter(Channel.SCRIPT, listener)
        sequencer = ScriptSequencer(
            self.script_client,
            settings=self.settings,
            rate_limiter=self.rate_limiters[Channel.SCRIPT],
            retrier=self.retriers[Channel.SCRIPT],
            storage=self.storage,
            sleep=self._sleep,
        )
        return await self._run(
            emitter,
            sequencer.generate(prompt, emitter, output_dir=output_dir, section_count=section_count),
        )

    async def generate_audio(
        self,
        content: str,
        output_dir: Optional[str] = None,
        section_index: int = 0,
        listener: Optional[ProgressListener] = None,
    ) -> AudioResult:
        """Generate one assembled audio file for ``content``."""
        emitter = ProgressEmitter(Channel.AUDIO, listener)
        generator = AudioGenerator(
            self.audio_client,
            self.storage,
            settings=self.settings,
            rate_limiter=self.rate_limiters[Channel.AUDIO],
            retrier=self.retriers[Channel.AUDIO],
            sleep=self._sleep,
        )
        return await self._run(
            emitter,
            generator.generate(content, output_dir=output_dir, section_index=section_index, emitter=emitter),
        )

    async def generate_images(
        self,
        content: str,
        section_index: int = 0,
        output_dir: Optional[str] = None,
        listener: Optional[ProgressListener] = None,
    ) -> ImageBatchResult:
        """Generate an image batch illustrating ``content``."""
        prompt = self.prompt_templates.build_image_prompt(content)
        emitter = ProgressEmitter(Channel.IMAGE, listener)
        generator = ImageBatchGenerator(
            self.image_client,
            self.storage,
            settings=self.settings,
            rate_limiter=self.rate_limiters[Channel.IMAGE],
            retrier=self.retriers[Channel.IMAGE],
            sleep=self._sleep,
        )
        return await self._run(
            emitter,
            generator.generate(prompt, section_index=section_index, output_dir=output_dir, emitter=emitter),
        )

    async def produce(
        self,
        topic: str,
        output_dir: Optional[str] = None,
        listener: Optional[ProgressListener] = None,
    ) -> ProductionResult:
        """
        Generate a script, then its audio and per-section images concurrently.

        Audio and image failures are collected in ``errors`` rather than
        aborting the other channel; a script failure aborts the production.
        """
        script = await self.generate_script(topic=topic, output_dir=output_dir, listener=listener)
        result = ProductionResult(script=script)

        audio_dir = posixpath.join(output_dir, "audio") if output_dir else "audio"
        image_dir = posixpath.join(output_dir, "images") if output_dir else "images"

        async def image_run() -> dict[int, ImageBatchResult]:
            batches = {}
            for section in script.sections:
                try:
                    batches[section.index] = await self.generate_images(
                        PromptTemplates.clean_section(section.content),
                        section_index=section.index,
                        output_dir=image_dir,
                        listener=listener,
                    )
                except Exception as e:
                    result.errors.append(f"images[section {section.index}]: {e}")
            return batches

        audio, images = await asyncio.gather(
            self.generate_audio(script.text, output_dir=audio_dir, listener=listener),
            image_run(),
            return_exceptions=True,
        )

        if isinstance(audio, Exception):
            result.errors.append(f"audio: {audio}")
        elif isinstance(audio, BaseException):
            raise audio
        else:
            result.audio = audio

        if isinstance(images, BaseException):
            raise images
        result.images = images

        logger.info(
            f"Production complete: {len(script.sections)} sections, "
            f"audio={'yes' if result.audio else 'no'}, image batches={len(result.images)}, "
            f"errors={len(result.errors)}"
        )
        return result

    async def _run(self, emitter: ProgressEmitter, run: Awaitable[T]) -> T:
        """Await a run and its event deliveries; an abandoned run emits nothing further."""
        try:
            return await run
        except asyncio.CancelledError:
            emitter.close()
            logger.info(f"{emitter.channel.value} run cancelled by caller")
            raise
        finally:
            if not emitter.closed:
                await emitter.drain()
