"""
Store interfaces (Protocol-based).

Implementations: SQLite (quiztrack.adapters.sqlite.repos) and in-memory
(quiztrack.adapters.memory_store). Adapters raise StoreUnavailableError for
connectivity/storage failures and AggregationError subclasses for query
failures; they never leak driver exceptions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from quiztrack.core.entities import BucketType, Event, EventCount, EventFact, EventKind, Site

# -----------------------------------------------------------------------------
# Sites
# -----------------------------------------------------------------------------


class SiteRepoPort(Protocol):
    """
    Repository for tenant sites.

    Invariants:
    - upsert_site is atomic: concurrent first writers of a domain converge
      to a single row (store-level unique constraint, not check-then-act)
    """

    def upsert_site(self, domain: str) -> Site:
        """Insert the domain if absent and return the stored row."""
        ...

    def list_domains(self) -> list[str]:
        """Return all onboarded domains sorted ascending."""
        ...


# -----------------------------------------------------------------------------
# Events
# -----------------------------------------------------------------------------


class EventRepoPort(Protocol):
    """Append-only event log."""

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


# -----------------------------------------------------------------------------
# Statistics
# -----------------------------------------------------------------------------


class StatsRepoPort(Protocol):
    """Read-side aggregation queries over the event log."""

    def count_by_site_quiz(
        self,
        start: datetime,
        end: datetime,
        site: str | None = None,
        bucket_type: BucketType | None = None,
    ) -> list[EventCount]:
        """Grouped counts per (bucket?, site, quiz). Raises AggregationError."""
        ...

    def count_by_campaign(
        self,
        quiz_id: str,
        start: datetime,
        end: datetime,
    ) -> list[EventCount]:
        """Grouped counts per campaign of one quiz. Raises AggregationError."""
        ...

    def scan_events(
        self,
        start: datetime,
        end: datetime,
        site: str | None = None,
        quiz_id: str | None = None,
        limit: int = 1000,
    ) -> list[EventFact]:
        """Most recent matching events (coarse fallback source)."""
        ...

    def list_domains(self) -> list[str]:
        """Return all onboarded domains sorted ascending."""
        ...

    def ping(self) -> None:
        """Raise StoreUnavailableError if the store cannot be reached."""
        ...
