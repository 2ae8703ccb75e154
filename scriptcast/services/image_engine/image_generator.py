"""Batch image generation from one source prompt."""

import asyncio
import logging
from typing import Optional

from scriptcast.config import Settings, get_settings
from scriptcast.exceptions import (
    ImageGenerationError,
    MalformedResponseError,
    TotalFailureError,
)
from scriptcast.models.content import ConversationTurn, GeneratedImage, ImageBatchResult
from scriptcast.models.enums import Channel, FailureKind, TurnRole
from scriptcast.services.progress import ProgressEmitter
from scriptcast.services.remote.base import GenerationClient
from scriptcast.services.storage import ArtifactStorage, artifact_path
from scriptcast.utils.rate_limiter import RateLimiter
from scriptcast.utils.retry import BackoffRetrier, RetryPolicy, failure_kind_of

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


def split_prompts(text: str) -> list[str]:
    """One sub-prompt per non-empty line, trimmed, in order."""
    return [line.strip() for line in text.split("\n") if line.strip()]


def image_filename(section_index: int, prompt_index: int, variant_index: int, extension: str) -> str:
    return f"section_{section_index}_prompt_{prompt_index}_image_{variant_index}.{extension}"


class ImageBatchGenerator:
    """
    Generates one or more images per derived sub-prompt.

    Phase 1 turns the source prompt into an ordered list of sub-prompts with
    one text call. Phase 2 generates and persists images for each sub-prompt
    in order. A failing sub-prompt is reported and skipped; the batch fails
    only when it produced no image at all.
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
        self.images_per_prompt = self.settings.images_per_prompt
        self.prompt_pacing = self.settings.image_prompt_pacing
        self.overload_cooldown = self.settings.image_overload_cooldown
        self.extension = IMAGE_EXTENSIONS.get(self.settings.image_output_mime_type.lower(), "jpg")

        self.rate_limiter = rate_limiter or RateLimiter(
            max_requests=self.settings.image_rate_limit_requests,
            window=self.settings.image_rate_limit_window,
            safety_margin=self.settings.rate_limit_safety_margin,
            name="image",
        )
        self.retrier = retrier or BackoffRetrier(
            RetryPolicy.from_settings(self.settings, Channel.IMAGE),
            name="image",
        )
        self._sleep = sleep or asyncio.sleep

    async def derive_prompts(self, prompt: str, emitter: Optional[ProgressEmitter] = None) -> list[str]:
        """
        Ask the service for image prompts, one per line.

        Raises:
            ExhaustedRetriesError: If every attempt failed or came back empty.
        """
        turns = [ConversationTurn(role=TurnRole.REQUESTER, content=prompt)]

        async def attempt() -> list[str]:
            await self.rate_limiter.admit()
            text = await self.client.generate_text(turns, grounded=False)
            prompts = split_prompts(text or "")
            if not prompts:
                raise MalformedResponseError(message="No image prompts generated.", field="text")
            return prompts

        prompts = await self.retrier.execute(attempt, label="Image prompts", emitter=emitter)
        logger.info(f"Derived {len(prompts)} image prompts")
        return prompts

    async def generate(
        self,
        prompt: str,
        section_index: int = 0,
        output_dir: Optional[str] = None,
        emitter: Optional[ProgressEmitter] = None,
    ) -> ImageBatchResult:
        """
        Derive sub-prompts from ``prompt`` and generate images for each.

        Args:
            prompt: Template-expanded source prompt.
            section_index: Section number encoded in image filenames.
            output_dir: Storage directory for the images.
            emitter: Receives image-chunk, retry and error events.

        Returns:
            ImageBatchResult with the persisted images in sub-prompt order.

        Raises:
            ImageGenerationError: If no sub-prompts could be derived.
            TotalFailureError: If no image was produced for any sub-prompt.
        """
        emitter = emitter or ProgressEmitter(Channel.IMAGE)

        try:
            prompts = await self.derive_prompts(prompt, emitter)
        except Exception as e:
            error = ImageGenerationError(
                message=f"Image prompt generation failed: {e}",
                details={"failure_kind": failure_kind_of(e).value},
                cause=e,
            )
            emitter.error(f"Error: {error.message}", error=error, fatal=True)
            raise error

        total = len(prompts)
        images: list[GeneratedImage] = []
        failed_prompts: list[int] = []
        emitter.image_chunk(0, total, "Starting image generation...")

        for prompt_index, sub_prompt in enumerate(prompts):
            emitter.image_chunk(
                prompt_index + 1,
                total,
                f"Generating images for prompt {prompt_index + 1}/{total}",
            )
            try:
                images.extend(
                    await self._generate_for_prompt(
                        sub_prompt, prompt_index, section_index, output_dir, emitter
                    )
                )
            except Exception as e:
                kind = failure_kind_of(e)
                logger.error(f"Error generating image for prompt \"{sub_prompt}\": {e}")
                failed_prompts.append(prompt_index)
                emitter.error(
                    f"Failed to generate images for prompt {prompt_index + 1}/{total}: {e}",
                    error=e,
                    failure_kind=kind,
                )
                if kind is FailureKind.OVERLOADED and self.overload_cooldown > 0:
                    emitter.progress(
                        f"Service overloaded, waiting {self.overload_cooldown:.0f} seconds before continuing..."
                    )
                    await self._sleep(self.overload_cooldown)

        if not images:
            error = TotalFailureError(
                message="No images were successfully generated.",
                channel=Channel.IMAGE.value,
                details={"prompts": total},
            )
            emitter.error(f"Error: {error.message}", error=error, fatal=True)
            raise error

        emitter.image_chunk(total, total, "Image generation completed!")
        return ImageBatchResult(prompts=prompts, images=images, failed_prompts=failed_prompts)

    async def _generate_for_prompt(
        self,
        sub_prompt: str,
        prompt_index: int,
        section_index: int,
        output_dir: Optional[str],
        emitter: ProgressEmitter,
    ) -> list[GeneratedImage]:

        async def attempt() -> list[bytes]:
            await self.rate_limiter.admit()
            generated = await self.client.generate_images(sub_prompt, self.images_per_prompt)
            if not generated:
                raise MalformedResponseError(
                    message=f"No images generated for prompt {prompt_index + 1}",
                    field="generated_images",
                )
            return generated

        generated = await self.retrier.execute(
            attempt,
            label=f"Image prompt {prompt_index + 1}",
            emitter=emitter,
        )

        images = []
        for variant_index, data in enumerate(generated):
            filename = image_filename(section_index, prompt_index, variant_index, self.extension)
            location = await self.storage.write(artifact_path(output_dir, filename), data)
            logger.info(
                f"Image saved as {location} (Prompt {prompt_index}, Image {variant_index + 1})"
            )
            images.append(
                GeneratedImage(
                    source_prompt_index=prompt_index,
                    variant_index=variant_index,
                    path=location,
                    data=data,
                )
            )

        if self.prompt_pacing > 0:
            await self._sleep(self.prompt_pacing)
        return images
