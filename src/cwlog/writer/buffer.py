# src/cwlog/writer/buffer.py
"""Pending event buffer with batch-size accounting.

Events are appended at the tail as lines complete and drained from the
head in batches that respect both PutLogEvents limits: total bytes
(message bytes plus 26 per event) and event count.

Key design decisions:
- drain() stops BEFORE the event that would overflow a cap, so a batch is
  never over either limit, not even by one event
- A message too large to fit an otherwise empty batch is truncated on
  append, so every buffered event fits in a batch of its own
- Timestamps are clamped so they never decrease in append order, which
  PutLogEvents requires within a batch
"""

from collections import deque

import structlog

from cwlog.core.clock import DEFAULT_CLOCK, Clock
from cwlog.writer.events import (
    EVENT_OVERHEAD_BYTES,
    MAX_BATCH_BYTES,
    MAX_BATCH_EVENTS,
    EmptyLineMode,
    LogEvent,
    event_size,
)

logger = structlog.get_logger(__name__)


class EventBuffer:
    """FIFO queue of pending log events with a running byte total.

    Thread Safety:
        NOT thread-safe. LogWriter holds its lock around append() and
        drain(); they are the only mutators.

    Attributes:
        size: Sum of event_size() over all buffered events.

    Example:
        buffer = EventBuffer(clock=MockClock(start=1_000))
        buffer.append("hello")
        batch = buffer.drain()   # [LogEvent("hello", 1000)]
    """

    def __init__(
        self,
        *,
        clock: Clock = DEFAULT_CLOCK,
        max_batch_bytes: int = MAX_BATCH_BYTES,
        max_batch_events: int = MAX_BATCH_EVENTS,
        empty_lines: EmptyLineMode = EmptyLineMode.DROP,
        empty_line_placeholder: str = " ",
    ) -> None:
        """Initialize an empty buffer.

        Args:
            clock: Source of event timestamps.
            max_batch_bytes: Byte cap for one drained batch, overhead included.
            max_batch_events: Event-count cap for one drained batch.
            empty_lines: Whether blank lines are dropped or replaced.
            empty_line_placeholder: Message used for blank lines in
                PLACEHOLDER mode.

        Raises:
            ValueError: If a cap cannot hold a single event.
        """
        if max_batch_bytes <= EVENT_OVERHEAD_BYTES:
            raise ValueError(f"max_batch_bytes must be > {EVENT_OVERHEAD_BYTES}, got {max_batch_bytes}")
        if max_batch_events < 1:
            raise ValueError(f"max_batch_events must be >= 1, got {max_batch_events}")
        if empty_lines == EmptyLineMode.PLACEHOLDER and not empty_line_placeholder:
            raise ValueError("empty_line_placeholder must be non-empty in placeholder mode")

        self._clock = clock
        self._max_batch_bytes = max_batch_bytes
        self._max_batch_events = max_batch_events
        self._max_message_bytes = max_batch_bytes - EVENT_OVERHEAD_BYTES
        self._empty_lines = empty_lines
        self._placeholder = empty_line_placeholder

        self._events: deque[LogEvent] = deque()
        self._size = 0
        self._last_timestamp = 0
        self._truncated_count = 0

    def append(self, line: str) -> LogEvent | None:
        """Stamp a line and append it to the tail.

        Args:
            line: Line text without its delimiter.

        Returns:
            The buffered event, or None if the line was dropped.
        """
        if not line:
            if self._empty_lines == EmptyLineMode.DROP:
                return None
            line = self._placeholder

        encoded = line.encode("utf-8")
        if len(encoded) > self._max_message_bytes:
            line = encoded[: self._max_message_bytes].decode("utf-8", errors="ignore")
            self._truncated_count += 1
            logger.warning(
                "Truncated line exceeding batch size limit",
                original_bytes=len(encoded),
                max_message_bytes=self._max_message_bytes,
                truncated_total=self._truncated_count,
            )

        # Wall clocks can step backwards; PutLogEvents cannot
        timestamp = max(self._clock.time_ms(), self._last_timestamp)
        self._last_timestamp = timestamp

        event = LogEvent(message=line, timestamp=timestamp)
        self._events.append(event)
        self._size += event.size
        return event

    def drain(self) -> list[LogEvent]:
        """Remove and return the largest head prefix that fits both caps.

        Events are returned in FIFO order (oldest first).

        Returns:
            The drained batch. Empty if the buffer is empty.
        """
        batch: list[LogEvent] = []
        batch_size = 0
        for event in self._events:
            if len(batch) >= self._max_batch_events:
                break
            if batch_size + event.size > self._max_batch_bytes:
                break
            batch_size += event.size
            batch.append(event)

        for _ in range(len(batch)):
            self._events.popleft()
        self._size -= batch_size
        return batch

    @property
    def size(self) -> int:
        """Bytes currently buffered, per-event overhead included."""
        return self._size

    @property
    def truncated_count(self) -> int:
        """Number of lines truncated to fit the batch size limit."""
        return self._truncated_count

    def __len__(self) -> int:
        """Return the number of buffered events."""
        return len(self._events)
