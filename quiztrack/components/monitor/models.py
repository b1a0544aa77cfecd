"""
Monitor component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class MonitorEntry:
    """One received tracking call."""

    event: str
    quiz_id: str
    site: str
    saved: str
    received_at: datetime
    utm_campaign: str | None = None


@dataclass(frozen=True)
class QuizSummary:
    """Per-quiz counts over the buffered entries."""

    views: int = 0
    completes: int = 0


@dataclass(frozen=True)
class MonitorSnapshot:
    """Point-in-time view of the buffer, newest entry first."""

    timestamp: datetime
    capacity: int
    entries: tuple[MonitorEntry, ...]
    summary: dict[str, QuizSummary] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.entries)
