# tests/unit/writer/test_sequence.py
"""Tests for SequenceTracker."""

from cwlog.writer.sequence import SequenceTracker


class TestSequenceTracker:
    def test_starts_without_token(self) -> None:
        tracker = SequenceTracker()
        assert tracker.current is None
        assert tracker.updates == 0

    def test_initial_token(self) -> None:
        assert SequenceTracker("abc").current == "abc"

    def test_update_replaces_token(self) -> None:
        tracker = SequenceTracker()
        tracker.update("1")
        tracker.update("42", source="stale_token")

        assert tracker.current == "42"
        assert tracker.updates == 2

    def test_update_to_none(self) -> None:
        """Backends that stopped issuing tokens return None."""
        tracker = SequenceTracker("1")
        tracker.update(None)
        assert tracker.current is None
