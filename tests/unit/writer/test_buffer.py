# tests/unit/writer/test_buffer.py
"""Unit tests for EventBuffer append/drain accounting.

Tests cover:
- FIFO order and byte-size bookkeeping
- drain() stopping before either cap is exceeded
- Empty-line policy
- Timestamp capture and monotonic clamping
- Truncation of lines that cannot fit any batch
"""

import pytest

from cwlog.core.clock import MockClock
from cwlog.writer.buffer import EventBuffer
from cwlog.writer.events import EVENT_OVERHEAD_BYTES, EmptyLineMode, LogEvent, event_size


@pytest.fixture
def buffer(clock: MockClock) -> EventBuffer:
    return EventBuffer(clock=clock)


class TestEventBufferAppend:
    """Tests for append() behavior."""

    def test_empty_buffer(self, buffer: EventBuffer) -> None:
        assert len(buffer) == 0
        assert buffer.size == 0

    def test_append_tracks_size_with_overhead(self, buffer: EventBuffer) -> None:
        buffer.append("hello")
        buffer.append("hi")
        assert len(buffer) == 2
        assert buffer.size == 5 + 2 + 2 * EVENT_OVERHEAD_BYTES

    def test_size_counts_utf8_bytes(self, buffer: EventBuffer) -> None:
        buffer.append("é")
        assert buffer.size == 2 + EVENT_OVERHEAD_BYTES

    def test_append_stamps_with_clock(self, buffer: EventBuffer, clock: MockClock) -> None:
        first = buffer.append("first")
        clock.advance(500)
        second = buffer.append("second")

        assert first == LogEvent("first", 1_700_000_000_000)
        assert second == LogEvent("second", 1_700_000_000_500)

    def test_timestamps_never_go_backwards(self, buffer: EventBuffer, clock: MockClock) -> None:
        buffer.append("before")
        clock.set(1_000)
        event = buffer.append("after clock step")

        assert event is not None
        assert event.timestamp == 1_700_000_000_000

    def test_empty_line_dropped_by_default(self, buffer: EventBuffer) -> None:
        assert buffer.append("") is None
        assert len(buffer) == 0
        assert buffer.size == 0

    def test_empty_line_placeholder_mode(self, clock: MockClock) -> None:
        buffer = EventBuffer(clock=clock, empty_lines=EmptyLineMode.PLACEHOLDER, empty_line_placeholder="-")
        event = buffer.append("")

        assert event is not None
        assert event.message == "-"
        assert buffer.size == 1 + EVENT_OVERHEAD_BYTES

    def test_oversized_line_is_truncated_to_fit_a_batch(self, clock: MockClock) -> None:
        buffer = EventBuffer(clock=clock, max_batch_bytes=EVENT_OVERHEAD_BYTES + 10)
        event = buffer.append("x" * 25)

        assert event is not None
        assert event.message == "x" * 10
        assert buffer.truncated_count == 1
        assert buffer.drain() == [event]

    def test_truncation_does_not_split_characters(self, clock: MockClock) -> None:
        buffer = EventBuffer(clock=clock, max_batch_bytes=EVENT_OVERHEAD_BYTES + 3)
        event = buffer.append("éé")  # 4 bytes

        assert event is not None
        assert event.message == "é"


class TestEventBufferDrain:
    """Tests for drain() batch selection."""

    def test_drain_empty_buffer(self, buffer: EventBuffer) -> None:
        assert buffer.drain() == []

    def test_drain_returns_fifo_order_and_empties(self, buffer: EventBuffer) -> None:
        for message in ["a", "b", "c"]:
            buffer.append(message)

        batch = buffer.drain()

        assert [e.message for e in batch] == ["a", "b", "c"]
        assert len(buffer) == 0
        assert buffer.size == 0

    def test_drain_respects_event_cap(self, clock: MockClock) -> None:
        buffer = EventBuffer(clock=clock, max_batch_events=2)
        for message in ["a", "b", "c", "d", "e"]:
            buffer.append(message)

        assert [e.message for e in buffer.drain()] == ["a", "b"]
        assert [e.message for e in buffer.drain()] == ["c", "d"]
        assert [e.message for e in buffer.drain()] == ["e"]
        assert buffer.drain() == []

    def test_drain_stops_before_byte_cap_is_exceeded(self, clock: MockClock) -> None:
        # Room for exactly two 4-byte messages
        cap = 2 * event_size("xxxx")
        buffer = EventBuffer(clock=clock, max_batch_bytes=cap)
        for _ in range(3):
            buffer.append("xxxx")

        batch = buffer.drain()

        assert len(batch) == 2
        assert sum(e.size for e in batch) == cap
        assert len(buffer) == 1

    def test_drain_never_exceeds_byte_cap_by_one_event(self, clock: MockClock) -> None:
        cap = 2 * event_size("xxxx") - 1
        buffer = EventBuffer(clock=clock, max_batch_bytes=cap)
        for _ in range(3):
            buffer.append("xxxx")

        batch = buffer.drain()

        assert len(batch) == 1
        assert sum(e.size for e in batch) <= cap

    def test_size_decrements_by_drained_bytes(self, clock: MockClock) -> None:
        buffer = EventBuffer(clock=clock, max_batch_events=1)
        buffer.append("short")
        buffer.append("a bit longer")

        buffer.drain()

        assert buffer.size == event_size("a bit longer")

    def test_invalid_caps_rejected(self, clock: MockClock) -> None:
        with pytest.raises(ValueError, match="max_batch_bytes"):
            EventBuffer(clock=clock, max_batch_bytes=EVENT_OVERHEAD_BYTES)
        with pytest.raises(ValueError, match="max_batch_events"):
            EventBuffer(clock=clock, max_batch_events=0)
