"""Tests for ProgressEmitter."""

import pytest

from scriptcast.models.enums import Channel, FailureKind
from scriptcast.models.events import ErrorEvent, SectionEvent
from scriptcast.services.progress import ProgressEmitter


class TestProgressEmitter:
    """Test suite for ProgressEmitter."""

    def test_sync_listener_receives_events_in_order(self, listener):
        """Events reach a synchronous listener in emission order."""
        emitter = ProgressEmitter(Channel.SCRIPT, listener)

        emitter.outline("the outline")
        emitter.section(1, "first")
        emitter.section(2, "second")

        assert [e.type for e in listener.events] == ["outline", "section", "section"]
        assert [e.section_number for e in listener.of_type("section")] == [1, 2]
        assert all(e.channel is Channel.SCRIPT for e in listener.events)

    def test_failing_listener_does_not_raise(self):
        """A listener exception is logged, never propagated."""

        def broken(event):
            raise RuntimeError("listener bug")

        emitter = ProgressEmitter(Channel.AUDIO, broken)
        emitter.progress("still fine")

    def test_no_listener(self):
        """Emitting without a listener is a no-op."""
        ProgressEmitter(Channel.IMAGE).image_chunk(1, 3)

    async def test_async_listener_is_scheduled(self):
        """Coroutine listeners are delivered without blocking the emitter."""
        received = []

        async def listener(event):
            received.append(event)

        emitter = ProgressEmitter(Channel.AUDIO, listener)
        emitter.audio_chunk(1, 4)
        await emitter.drain()

        assert len(received) == 1
        assert received[0].chunk_index == 1
        assert received[0].total_chunks == 4

    def test_closed_emitter_drops_events(self, listener):
        """Nothing is delivered after close()."""
        emitter = ProgressEmitter(Channel.SCRIPT, listener)
        emitter.progress("before")
        emitter.close()
        emitter.progress("after")

        assert emitter.closed
        assert [e.message for e in listener.events] == ["before"]

    def test_error_event_fields(self, listener):
        """Error events carry the error name, kind and fatality."""
        emitter = ProgressEmitter(Channel.IMAGE, listener)
        emitter.error("went wrong", error=ValueError("x"), failure_kind=FailureKind.OVERLOADED, fatal=True)

        (event,) = listener.events
        assert isinstance(event, ErrorEvent)
        assert event.error == "ValueError"
        assert event.failure_kind == "overloaded"
        assert event.fatal is True

    def test_section_numbers_start_at_one(self):
        """Section events reject numbers below one."""
        with pytest.raises(ValueError):
            SectionEvent(channel=Channel.SCRIPT, section_number=0, content="x")
