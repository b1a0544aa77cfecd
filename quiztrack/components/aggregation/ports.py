"""
Aggregation component port definitions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from quiztrack.core.entities import BucketType, EventCount, EventFact


class StatsRepoPort(Protocol):
    """Read-side aggregation queries over the event log."""

    def count_by_site_quiz(
        self,
        start: datetime,
        end: datetime,
        site: str | None = None,
        bucket_type: BucketType | None = None,
    ) -> list[EventCount]:
        """Grouped counts per (bucket?, site, quiz)."""
        ...

    def count_by_campaign(
        self,
        quiz_id: str,
        start: datetime,
        end: datetime,
    ) -> list[EventCount]:
        """Grouped counts per campaign of one quiz."""
        ...

    def scan_events(
        self,
        start: datetime,
        end: datetime,
        site: str | None = None,
        quiz_id: str | None = None,
        limit: int = 1000,
    ) -> list[EventFact]:
        """Most recent matching events."""
        ...

    def list_domains(self) -> list[str]:
        """Sorted onboarded domains."""
        ...


class TimePort(Protocol):
    """Time provider interface."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...
