"""Event bus — decouples the capture engine from its consumers such as the CLI and log output.

* Type-safe event types via the ``EventType`` enum.
* Multiple sink pattern: a single bus emits to all registered
  ``EventSink`` implementations (JSONL stream, asyncio queue, logger).
* A sink that raises is logged and skipped; it never interrupts a capture.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Event types
# ---------------------------------------------------------------------------


class EventType(str, Enum):
    """All event types emitted during a capture run."""

    START = "start"
    PROGRESS = "progress"
    COMPLETE = "complete"
    ERROR = "error"


# ---------------------------------------------------------------------------
# Event payload model
# ---------------------------------------------------------------------------


class CaptureEvent(BaseModel):
    """One lifecycle signal for a (url, browser) job.

    ``breakpoint`` and ``path`` are only set on ``progress`` events;
    ``message`` only on ``error`` events.
    """

    type: EventType
    browser: str
    url: str
    breakpoint: str = ""
    path: str = ""
    message: str = ""
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_jsonl(self) -> str:
        """Serialize to a single JSON line (no trailing newline)."""
        return self.model_dump_json()


# ---------------------------------------------------------------------------
# Sink protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class EventSink(Protocol):
    """Protocol for event consumers.

    Implementations may write to JSONL files, SSE connections,
    structured loggers, or in-memory buffers for testing.
    """

    async def handle_event(self, event: CaptureEvent) -> None:
        """Process a single event."""
        ...


# ---------------------------------------------------------------------------
# Built-in sinks
# ---------------------------------------------------------------------------


class LoggingSink:
    """Emit events to the Python logger at DEBUG level."""

    def __init__(self, logger_name: str = "silverscreen.events") -> None:
        self._logger = logging.getLogger(logger_name)

    async def handle_event(self, event: CaptureEvent) -> None:
        """Log the event."""
        self._logger.debug(
            "[%s] %s %s %s",
            event.browser,
            event.type.value,
            event.url,
            json.dumps({"breakpoint": event.breakpoint, "path": event.path, "message": event.message})[:200],
        )


class InMemorySink:
    """Collect events in a list."""

    def __init__(self) -> None:
        self.events: list[CaptureEvent] = []

    async def handle_event(self, event: CaptureEvent) -> None:
        """Append the event to the in-memory list."""
        self.events.append(event)

    def of_type(self, event_type: EventType) -> list[CaptureEvent]:
        """Return collected events of one type, in emission order."""
        return [e for e in self.events if e.type == event_type]

    def clear(self) -> None:
        """Clear all collected events."""
        self.events.clear()

    @property
    def count(self) -> int:
        """Return the number of collected events."""
        return len(self.events)


class JsonlSink:
    """Write events as JSONL lines to a file-like object.

    Works with ``sys.stdout``, ``sys.stderr``, or an open file handle.
    """

    def __init__(self, stream: Any) -> None:
        self._stream = stream

    async def handle_event(self, event: CaptureEvent) -> None:
        """Write one JSON line to the stream."""
        self._stream.write(event.to_jsonl() + "\n")
        if hasattr(self._stream, "flush"):
            self._stream.flush()


class QueueSink:
    """Push events onto an ``asyncio.Queue`` for streaming consumers (e.g. SSE)."""

    def __init__(self, queue: asyncio.Queue[CaptureEvent] | None = None) -> None:
        self.queue: asyncio.Queue[CaptureEvent] = queue if queue is not None else asyncio.Queue()

    async def handle_event(self, event: CaptureEvent) -> None:
        """Enqueue the event without blocking the producer."""
        self.queue.put_nowait(event)


# ---------------------------------------------------------------------------
# Event bus
# ---------------------------------------------------------------------------


class EventBus:
    """Central event dispatcher for engine-to-consumer communication."""

    def __init__(self) -> None:
        self._sinks: list[EventSink] = []

    # ------------------------------------------------------------------
    # Sink management
    # ------------------------------------------------------------------

    def add_sink(self, sink: EventSink) -> None:
        """Register an event sink."""
        self._sinks.append(sink)

    def remove_sink(self, sink: EventSink) -> None:
        """Remove a previously registered sink."""
        self._sinks = [s for s in self._sinks if s is not sink]

    @property
    def sink_count(self) -> int:
        """Return the number of registered sinks."""
        return len(self._sinks)

    # ------------------------------------------------------------------
    # Emit
    # ------------------------------------------------------------------

    async def emit(self, event_type: EventType | str, *, browser: str, url: str, **fields: str) -> CaptureEvent:
        """Build an event and hand it to every registered sink.

        Args:
            event_type: The event type (``EventType`` enum or raw string).
            browser: Engine name of the job.
            url: Source URL of the job.
            **fields: ``breakpoint``, ``path`` or ``message``.

        Returns:
            The emitted event.
        """
        event = CaptureEvent(type=EventType(event_type), browser=browser, url=url, **fields)

        for sink in self._sinks:
            try:
                await sink.handle_event(event)
            except Exception as exc:
                logger.warning("EventBus sink error (%s): %s", type(sink).__name__, exc)
        return event
