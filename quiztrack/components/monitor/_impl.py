"""
RecentEventsBuffer - bounded in-process record of received tracking calls.

Scoped to the process lifetime and injected where needed; capacity is
fixed at construction and the oldest entry is evicted first.
"""

from __future__ import annotations

from collections import deque
from threading import Lock

from quiztrack.adapters.clock import SystemClock

from .models import MonitorEntry, MonitorSnapshot, QuizSummary
from .ports import TimePort

DEFAULT_CAPACITY = 50


class RecentEventsBuffer:
    """Thread-safe ring buffer of MonitorEntry."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY, time_port: TimePort | None = None) -> None:
        if capacity <= 0:
            msg = f"Monitor capacity must be positive, got {capacity}"
            raise ValueError(msg)
        self._capacity = capacity
        self._entries: deque[MonitorEntry] = deque(maxlen=capacity)
        self._lock = Lock()
        self._time = time_port or SystemClock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def push(
        self,
        event: str,
        quiz_id: str,
        site: str,
        saved: str,
        utm_campaign: str | None = None,
    ) -> MonitorEntry:
        """Append an entry, evicting the oldest when full."""
        entry = MonitorEntry(
            event=event,
            quiz_id=quiz_id,
            site=site,
            saved=saved,
            received_at=self._time.now_utc(),
            utm_campaign=utm_campaign,
        )
        with self._lock:
            self._entries.append(entry)
        return entry

    def entries(self) -> list[MonitorEntry]:
        """Entries newest first."""
        with self._lock:
            return list(reversed(self._entries))

    def snapshot(self) -> MonitorSnapshot:
        """Entries plus a per-quiz view/complete summary."""
        entries = self.entries()

        counts: dict[str, list[int]] = {}
        for entry in entries:
            views_completes = counts.setdefault(entry.quiz_id, [0, 0])
            if entry.event == "view":
                views_completes[0] += 1
            elif entry.event == "complete":
                views_completes[1] += 1

        return MonitorSnapshot(
            timestamp=self._time.now_utc(),
            capacity=self._capacity,
            entries=tuple(entries),
            summary={q: QuizSummary(views=v, completes=c) for q, (v, c) in counts.items()},
        )

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
