"""
Recorder component port definitions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from quiztrack.components.monitor.ports import MonitorPort
from quiztrack.core.entities import Event, EventKind, Site


class EventRepoPort(Protocol):
    """Append-only event log with the guard's read queries."""

    def append(self, event: Event) -> Event:
        """Append one event."""
        ...

    def count_recent_by_ip(self, ip_hash: str, since: datetime) -> int:
        """Count events for a client fingerprint with created_at >= since."""
        ...

    def exists_recent(
        self,
        session_id: str,
        quiz_id: str,
        event_kind: EventKind,
        since: datetime,
    ) -> bool:
        """Check for a (session, quiz, kind) event with created_at >= since."""
        ...


class SiteRepoPort(Protocol):
    """Site upsert interface."""

    def upsert_site(self, domain: str) -> Site:
        """Insert the domain if absent and return the stored row."""
        ...


class TimePort(Protocol):
    """Time provider interface."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...


__all__ = ["EventRepoPort", "MonitorPort", "SiteRepoPort", "TimePort"]
