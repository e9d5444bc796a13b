"""Capture monitoring: the progress/error event bus and its sinks.

Usage::

    from silverscreen.monitoring import EventBus, InMemorySink

    bus = EventBus()
    sink = InMemorySink()
    bus.add_sink(sink)
    await bus.emit("progress", browser="chromium", url="https://example.com", breakpoint="mobile-390px")
"""

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

__all__ = [
    "CaptureEvent",
    "EventBus",
    "EventSink",
    "EventType",
    "InMemorySink",
    "JsonlSink",
    "LoggingSink",
    "QueueSink",
]
