"""Non-blocking progress event emission."""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from scriptcast.models.enums import Channel, FailureKind
from scriptcast.models.events import (
    AudioChunkEvent,
    ErrorEvent,
    ImageChunkEvent,
    OutlineEvent,
    ProgressEvent,
    ProgressMessage,
    RetryEvent,
    SectionEvent,
)

logger = logging.getLogger(__name__)

ProgressListener = Callable[[ProgressEvent], Union[None, Awaitable[None]]]


class ProgressEmitter:
    """
    Delivers ProgressEvents for one channel to an optional listener.

    Emission never raises and never waits on the listener: synchronous
    listeners that fail are logged and ignored, coroutine listeners are
    scheduled as tasks. After ``close()`` no further events are delivered.
    """

    def __init__(self, channel: Channel, listener: Optional[ProgressListener] = None):
        self.channel = channel
        self._listener = listener
        self._closed = False
        self._pending: set[asyncio.Task] = set()

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Stop delivering events (the run was abandoned or finished)."""
        self._closed = True

    def emit(self, event: ProgressEvent) -> None:
        if self._closed:
            return
        self._log(event)
        if self._listener is None:
            return

        try:
            result = self._listener(event)
        except Exception as e:
            logger.warning(f"Progress listener failed on {event.type} event: {e}")
            return

        if inspect.isawaitable(result):
            try:
                task = asyncio.get_running_loop().create_task(result)
            except RuntimeError:
                # No running loop to deliver on; drop the event
                if inspect.iscoroutine(result):
                    result.close()
                logger.warning(f"Dropped {event.type} event: no running event loop")
                return
            self._pending.add(task)
            task.add_done_callback(self._on_delivered)

    async def drain(self) -> None:
        """Wait for scheduled asynchronous deliveries (used by tests and shutdown)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _on_delivered(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning(f"Async progress listener failed: {exc}")

    def _log(self, event: ProgressEvent) -> None:
        prefix = f"[{self.channel.value}]"
        if isinstance(event, ErrorEvent):
            logger.error(f"{prefix} {event.message}")
        elif isinstance(event, RetryEvent):
            logger.warning(f"{prefix} {event.message}")
        else:
            logger.info(f"{prefix} {event.message or event.type}")

    # Convenience constructors

    def progress(self, message: str, output_path: Optional[str] = None) -> None:
        self.emit(ProgressMessage(channel=self.channel, message=message, output_path=output_path))

    def outline(self, content: str) -> None:
        self.emit(OutlineEvent(channel=self.channel, message="Outline generated", content=content))

    def section(self, section_number: int, content: str) -> None:
        self.emit(
            SectionEvent(
                channel=self.channel,
                message=f"Section {section_number} generated",
                section_number=section_number,
                content=content,
            )
        )

    def audio_chunk(self, chunk_index: int, total_chunks: int, message: str = "") -> None:
        self.emit(
            AudioChunkEvent(
                channel=self.channel,
                message=message or f"Processing audio chunk {chunk_index}/{total_chunks}",
                chunk_index=chunk_index,
                total_chunks=total_chunks,
            )
        )

    def image_chunk(self, current: int, total: int, message: str = "") -> None:
        self.emit(
            ImageChunkEvent(channel=self.channel, message=message, current=current, total=total)
        )

    def error(
        self,
        message: str,
        error: Any = None,
        failure_kind: Optional[FailureKind] = None,
        fatal: bool = False,
    ) -> None:
        if isinstance(error, BaseException):
            error_name = type(error).__name__
        else:
            error_name = str(error) if error else "Error"
        self.emit(
            ErrorEvent(
                channel=self.channel,
                message=message,
                error=error_name,
                failure_kind=failure_kind.value if failure_kind else None,
                fatal=fatal,
            )
        )

    def retry(
        self,
        attempt: int,
        max_attempts: int,
        delay_seconds: float,
        failure_kind: FailureKind,
        label: str = "request",
    ) -> None:
        self.emit(
            RetryEvent(
                channel=self.channel,
                message=(
                    f"{label}: {failure_kind.value} (attempt {attempt}/{max_attempts}). "
                    f"Waiting {delay_seconds:.1f} seconds..."
                ),
                attempt=attempt,
                max_attempts=max_attempts,
                delay_seconds=delay_seconds,
                failure_kind=failure_kind.value,
            )
        )
