"""
Guard component port definitions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from quiztrack.core.entities import EventKind


class GuardStorePort(Protocol):
    """Read-side event queries used by the abuse checks."""

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


class TimePort(Protocol):
    """Time provider interface."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...
