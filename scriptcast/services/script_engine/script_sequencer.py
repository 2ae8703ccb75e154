"""Multi-turn script generation: one outline, then N ordered sections."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from scriptcast.config import Settings, get_settings
from scriptcast.exceptions import (
    GenerationError,
    MalformedResponseError,
    ScriptGenerationError,
)
from scriptcast.models.content import ConversationTurn, ScriptResult, Section
from scriptcast.models.enums import Channel, SequencerState, TurnRole
from scriptcast.services.storage import ArtifactStorage, artifact_path
from scriptcast.services.progress import ProgressEmitter
from scriptcast.services.remote.base import GenerationClient
from scriptcast.utils.rate_limiter import RateLimiter
from scriptcast.utils.retry import BackoffRetrier, RetryPolicy, failure_kind_of

logger = logging.getLogger(__name__)


@dataclass
class _ScriptRun:
    """State owned by one sequencing run; discarded when the run ends."""

    section_count: int
    history: list[ConversationTurn] = field(default_factory=list)
    outline: str = ""
    sections: list[Section] = field(default_factory=list)
    state: SequencerState = SequencerState.IDLE

    def advance(self, state: SequencerState) -> None:
        logger.debug(f"Script run: {self.state.value} -> {state.value}")
        self.state = state

    @property
    def next_index(self) -> int:
        return len(self.sections) + 1


class ScriptSequencer:
    """
    Drives the outline + continuation exchange that produces a script.

    The caller's prompt is sent first; its non-empty reply is the outline.
    Each section is then requested by appending a continuation marker and
    sending the entire history. A failed or empty attempt removes its
    speculative marker turn before the same section is retried, so the
    history never accumulates failed turns.
    """

    def __init__(
        self,
        client: GenerationClient,
        settings: Optional[Settings] = None,
        rate_limiter: Optional[RateLimiter] = None,
        retrier: Optional[BackoffRetrier] = None,
        storage: Optional[ArtifactStorage] = None,
        sleep=None,
    ):
        self.settings = settings or get_settings()
        self.client = client
        self.storage = storage
        self.section_count = self.settings.script_section_count
        self.continuation_marker = self.settings.script_continuation_marker
        self.delimiter = self.settings.script_section_delimiter
        self.section_pacing = self.settings.script_section_pacing

        self.rate_limiter = rate_limiter or RateLimiter(
            max_requests=self.settings.script_rate_limit_requests,
            window=self.settings.script_rate_limit_window,
            safety_margin=self.settings.rate_limit_safety_margin,
            name="script",
        )
        self.retrier = retrier or BackoffRetrier(
            RetryPolicy.from_settings(self.settings, Channel.SCRIPT),
            name="script",
        )
        self._sleep = sleep or asyncio.sleep

    async def generate(
        self,
        prompt: str,
        emitter: Optional[ProgressEmitter] = None,
        output_dir: Optional[str] = None,
        section_count: Optional[int] = None,
    ) -> ScriptResult:
        """
        Generate an outline followed by ``section_count`` sections.

        Args:
            prompt: Fully expanded script prompt (first requester turn).
            emitter: Receives outline, section, retry and error events.
            output_dir: Where ``script.txt`` is written, when storage is configured.
            section_count: Overrides the configured number of sections.

        Returns:
            ScriptResult with the sections joined by the section delimiter.

        Raises:
            ScriptGenerationError: If the outline is missing or a section fails
                non-retryably or exhausts its retries.
        """
        emitter = emitter or ProgressEmitter(Channel.SCRIPT)
        run = _ScriptRun(section_count=section_count or self.section_count)
        script_path = None

        try:
            await self._request_outline(run, prompt, emitter)
            emitter.outline(run.outline)
            script_path = await self._save(run, output_dir, emitter)

            while len(run.sections) < run.section_count:
                index = run.next_index
                content = await self._request_section(run, index, emitter)

                run.sections.append(Section(index=index, content=content))
                run.advance(SequencerState.SECTION_RECEIVED)
                emitter.section(index, content)
                script_path = await self._save(run, output_dir, emitter) or script_path

                if self.section_pacing > 0:
                    await self._sleep(self.section_pacing)

        except ScriptGenerationError as e:
            run.advance(SequencerState.FAILED)
            emitter.error(f"Error: {e.message}", error=e, fatal=True)
            raise

        run.advance(SequencerState.COMPLETE)
        text = self.delimiter.join(section.content for section in run.sections)

        if script_path:
            emitter.progress(
                f"Script saved to {script_path} with {len(run.sections)} sections completed.",
                output_path=script_path,
            )
        else:
            emitter.progress(f"Script completed with {len(run.sections)} sections.")

        return ScriptResult(
            text=text,
            outline=run.outline,
            sections=list(run.sections),
            turns=len(run.history),
            script_path=script_path,
        )

    async def _request_outline(self, run: _ScriptRun, prompt: str, emitter: ProgressEmitter) -> None:
        run.advance(SequencerState.OUTLINE_REQUESTED)
        run.history.append(ConversationTurn(role=TurnRole.REQUESTER, content=prompt))

        async def attempt() -> Optional[str]:
            await self.rate_limiter.admit()
            return await self.client.generate_text(list(run.history))

        try:
            outline = await self.retrier.execute(attempt, label="Outline", emitter=emitter)
        except Exception as e:
            raise ScriptGenerationError(
                message=f"Outline generation failed: {e}",
                details={"failure_kind": failure_kind_of(e).value},
                cause=e,
            )

        # The outline is a precondition: an empty reply ends the run
        if not outline:
            raise ScriptGenerationError(message="No outline generated.")

        run.outline = outline
        run.history.append(ConversationTurn(role=TurnRole.RESPONDER, content=outline))
        run.advance(SequencerState.OUTLINE_RECEIVED)

    async def _request_section(self, run: _ScriptRun, index: int, emitter: ProgressEmitter) -> str:
        run.advance(SequencerState.SECTION_REQUESTED)

        async def attempt() -> str:
            run.history.append(
                ConversationTurn(role=TurnRole.REQUESTER, content=self.continuation_marker)
            )
            try:
                await self.rate_limiter.admit()
                content = await self.client.generate_text(list(run.history))
            except Exception:
                run.history.pop()
                raise

            if not content:
                run.history.pop()
                emitter.progress(f"Failed to generate Section {index}. Retrying...")
                raise MalformedResponseError(
                    message=f"Empty response for Section {index}",
                    field="text",
                )

            run.history.append(ConversationTurn(role=TurnRole.RESPONDER, content=content))
            return content

        try:
            return await self.retrier.execute(attempt, label=f"Section {index}", emitter=emitter)
        except Exception as e:
            raise ScriptGenerationError(
                message=f"Section {index} failed: {e}",
                section=index,
                details={"failure_kind": failure_kind_of(e).value},
                cause=e,
            )

    async def _save(
        self,
        run: _ScriptRun,
        output_dir: Optional[str],
        emitter: ProgressEmitter,
    ) -> Optional[str]:
        """Rewrite script.txt with everything received so far."""
        if self.storage is None:
            return None

        body = f"OUTLINE:\n{run.outline}\n\n--- SCRIPT ---\n\n"
        body += "".join(section.content + self.delimiter for section in run.sections)
        path = artifact_path(output_dir, self.settings.script_filename)
        try:
            return await self.storage.write(path, body.encode("utf-8"))
        except GenerationError as e:
            emitter.error(f"Could not save script to file: {e.message}", error=e)
            return None
