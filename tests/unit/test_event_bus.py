"""Unit tests for the capture event bus."""

from __future__ import annotations

import asyncio
import json
from io import StringIO

import pytest

from silverscreen.monitoring.event_bus import (
    CaptureEvent,
    EventBus,
    EventSink,
    EventType,
    InMemorySink,
    JsonlSink,
    LoggingSink,
    QueueSink,
)


class TestCaptureEvent:
    def test_progress_event_fields(self) -> None:
        event = CaptureEvent(
            type=EventType.PROGRESS,
            browser="chromium",
            url="https://example.com",
            breakpoint="mobile",
            path="chromium/example-com/mobile_1_0001.png",
        )
        assert event.type == EventType.PROGRESS
        assert event.message == ""
        assert "T" in event.timestamp

    def test_to_jsonl(self) -> None:
        event = CaptureEvent(type=EventType.ERROR, browser="firefox", url="https://x.com", message="boom")
        line = event.to_jsonl()
        assert "\n" not in line
        parsed = json.loads(line)
        assert parsed["type"] == "error"
        assert parsed["message"] == "boom"

    def test_event_type_values(self) -> None:
        assert {et.value for et in EventType} == {"start", "progress", "complete", "error"}


class TestSinks:
    def test_builtin_sinks_satisfy_protocol(self) -> None:
        for sink in (LoggingSink(), InMemorySink(), JsonlSink(StringIO()), QueueSink()):
            assert isinstance(sink, EventSink)

    @pytest.mark.anyio
    async def test_in_memory_sink_filters_by_type(self) -> None:
        sink = InMemorySink()
        await sink.handle_event(CaptureEvent(type=EventType.START, browser="b", url="u"))
        await sink.handle_event(CaptureEvent(type=EventType.PROGRESS, browser="b", url="u"))
        assert sink.count == 2
        assert len(sink.of_type(EventType.PROGRESS)) == 1
        sink.clear()
        assert sink.count == 0

    @pytest.mark.anyio
    async def test_jsonl_sink_writes_one_line_per_event(self) -> None:
        buf = StringIO()
        sink = JsonlSink(buf)
        for _ in range(3):
            await sink.handle_event(CaptureEvent(type=EventType.COMPLETE, browser="b", url="u"))
        assert len(buf.getvalue().strip().split("\n")) == 3

    @pytest.mark.anyio
    async def test_queue_sink_streams_events(self) -> None:
        queue: asyncio.Queue[CaptureEvent] = asyncio.Queue()
        sink = QueueSink(queue)
        await sink.handle_event(CaptureEvent(type=EventType.START, browser="b", url="u"))
        event = queue.get_nowait()
        assert event.type == EventType.START


class TestEventBus:
    @pytest.mark.anyio
    async def test_emit_to_all_sinks(self) -> None:
        bus = EventBus()
        first, second = InMemorySink(), InMemorySink()
        bus.add_sink(first)
        bus.add_sink(second)
        event = await bus.emit(EventType.PROGRESS, browser="webkit", url="https://a.com", breakpoint="mobile")
        assert first.events == [event]
        assert second.events == [event]
        assert event.breakpoint == "mobile"

    @pytest.mark.anyio
    async def test_string_event_type(self) -> None:
        bus = EventBus()
        sink = InMemorySink()
        bus.add_sink(sink)
        await bus.emit("error", browser="b", url="u", message="nope")
        assert sink.events[0].type == EventType.ERROR

    @pytest.mark.anyio
    async def test_failing_sink_does_not_break_others(self) -> None:
        class Broken:
            async def handle_event(self, event: CaptureEvent) -> None:
                raise RuntimeError("sink down")

        bus = EventBus()
        good = InMemorySink()
        bus.add_sink(Broken())
        bus.add_sink(good)
        await bus.emit(EventType.START, browser="b", url="u")
        assert good.count == 1

    @pytest.mark.anyio
    async def test_remove_sink(self) -> None:
        bus = EventBus()
        sink = InMemorySink()
        bus.add_sink(sink)
        bus.remove_sink(sink)
        assert bus.sink_count == 0
        await bus.emit(EventType.START, browser="b", url="u")
        assert sink.count == 0
