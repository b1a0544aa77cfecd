"""
In-memory tracking store for testing/dev.

Implements the site, event and stats ports over plain Python lists and
dicts guarded by a lock. Aggregations use the same bucketing rules as
the SQLite adapter.
"""

from __future__ import annotations

import threading
from datetime import datetime

from quiztrack.components.aggregation import ensure_utc, tally_campaigns, tally_facts
from quiztrack.core.entities import BucketType, Event, EventCount, EventFact, EventKind, Site


class InMemoryTrackingStore:
    """In-memory store implementing SiteRepoPort, EventRepoPort and StatsRepoPort."""

    def __init__(self) -> None:
        self._sites: dict[str, Site] = {}  # domain -> site
        self._events: list[Event] = []
        self._lock = threading.Lock()

    # --- Sites ---

    def upsert_site(self, domain: str) -> Site:
        with self._lock:
            site = self._sites.get(domain)
            if site is None:
                site = Site(domain=domain)
                self._sites[domain] = site
            return site

    def list_domains(self) -> list[str]:
        with self._lock:
            return sorted(self._sites)

    def get_sites(self) -> list[Site]:
        """Get all sites (for testing)."""
        with self._lock:
            return list(self._sites.values())

    # --- Events ---

    def append(self, event: Event) -> Event:
        with self._lock:
            self._events.append(event)
        return event

    def count_recent_by_ip(self, ip_hash: str, since: datetime) -> int:
        since = ensure_utc(since)
        with self._lock:
            return sum(
                1
                for e in self._events
                if e.ip_hash == ip_hash and ensure_utc(e.created_at) >= since
            )

    def exists_recent(
        self,
        session_id: str,
        quiz_id: str,
        event_kind: EventKind,
        since: datetime,
    ) -> bool:
        since = ensure_utc(since)
        with self._lock:
            return any(
                e.session_id == session_id
                and e.quiz_id == quiz_id
                and e.event_kind == event_kind
                and ensure_utc(e.created_at) >= since
                for e in self._events
            )

    def get_all(self) -> list[Event]:
        """Get all stored events (for testing)."""
        with self._lock:
            return list(self._events)

    # --- Statistics ---

    def _facts(
        self,
        start: datetime,
        end: datetime,
        site: str | None = None,
        quiz_id: str | None = None,
    ) -> list[EventFact]:
        start, end = ensure_utc(start), ensure_utc(end)
        with self._lock:
            domains = {s.id: s.domain for s in self._sites.values()}
            facts = [
                EventFact(
                    quiz_id=e.quiz_id,
                    event_kind=e.event_kind,
                    site=domains.get(e.site_id, ""),
                    utm_campaign=e.utm_campaign,
                    created_at=ensure_utc(e.created_at),
                )
                for e in self._events
                if start <= ensure_utc(e.created_at) <= end
            ]
        if site:
            facts = [f for f in facts if f.site == site]
        if quiz_id:
            facts = [f for f in facts if f.quiz_id == quiz_id]
        return facts

    def count_by_site_quiz(
        self,
        start: datetime,
        end: datetime,
        site: str | None = None,
        bucket_type: BucketType | None = None,
    ) -> list[EventCount]:
        return tally_facts(self._facts(start, end, site=site), bucket_type)

    def count_by_campaign(self, quiz_id: str, start: datetime, end: datetime) -> list[EventCount]:
        return tally_campaigns(self._facts(start, end, quiz_id=quiz_id))

    def scan_events(
        self,
        start: datetime,
        end: datetime,
        site: str | None = None,
        quiz_id: str | None = None,
        limit: int = 1000,
    ) -> list[EventFact]:
        facts = self._facts(start, end, site=site, quiz_id=quiz_id)
        facts.sort(key=lambda f: f.created_at, reverse=True)
        return facts[:limit]

    def ping(self) -> None:
        return None
