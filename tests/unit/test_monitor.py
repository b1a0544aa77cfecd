"""
Tests for the recent events monitor buffer.
"""

from __future__ import annotations

import pytest

from quiztrack.components.monitor import RecentEventsBuffer, run_snapshot


class TestRecentEventsBuffer:
    """Test ring buffer behavior."""

    def test_newest_first(self, time_port) -> None:
        """Entries come back newest first."""
        buffer = RecentEventsBuffer(capacity=5, time_port=time_port)
        buffer.push("view", "q1", "a.com", "stored")
        time_port.advance(1)
        buffer.push("complete", "q1", "a.com", "stored")

        entries = buffer.entries()
        assert [e.event for e in entries] == ["complete", "view"]
        assert entries[0].received_at > entries[1].received_at

    def test_oldest_evicted(self, time_port) -> None:
        """The oldest entry is dropped once capacity is reached."""
        buffer = RecentEventsBuffer(capacity=3, time_port=time_port)
        for i in range(5):
            buffer.push("view", f"q{i}", "a.com", "stored")

        assert len(buffer) == 3
        assert [e.quiz_id for e in buffer.entries()] == ["q4", "q3", "q2"]

    def test_summary_per_quiz(self, time_port) -> None:
        """Snapshot counts views and completes per quiz."""
        buffer = RecentEventsBuffer(capacity=10, time_port=time_port)
        buffer.push("view", "q1", "a.com", "stored")
        buffer.push("view", "q1", "a.com", "duplicate-skipped")
        buffer.push("complete", "q1", "a.com", "stored")
        buffer.push("view", "q2", "b.com", "logged")

        snapshot = run_snapshot(buffer=buffer)
        assert snapshot.total == 4
        assert snapshot.capacity == 10
        assert snapshot.summary["q1"].views == 2
        assert snapshot.summary["q1"].completes == 1
        assert snapshot.summary["q2"].views == 1
        assert snapshot.timestamp == time_port.now_utc()

    def test_empty_snapshot(self, time_port) -> None:
        """An empty buffer gives an empty snapshot."""
        snapshot = RecentEventsBuffer(time_port=time_port).snapshot()
        assert snapshot.total == 0
        assert snapshot.summary == {}
        assert snapshot.capacity == 50

    def test_clear(self) -> None:
        """clear() empties the buffer."""
        buffer = RecentEventsBuffer(capacity=2)
        buffer.push("view", "q1", "a.com", "stored")
        buffer.clear()
        assert len(buffer) == 0

    @pytest.mark.parametrize("capacity", [0, -1])
    def test_capacity_must_be_positive(self, capacity: int) -> None:
        """Non-positive capacities are rejected."""
        with pytest.raises(ValueError):
            RecentEventsBuffer(capacity=capacity)
