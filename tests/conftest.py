from __future__ import annotations

import os
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from quiztrack.adapters.memory_store import InMemoryTrackingStore
from quiztrack.adapters.sqlite.migrator import SQLiteMigrator
from quiztrack.adapters.sqlite.repos import SQLiteTrackingStore
from quiztrack.core.entities import Event, EventKind, Site
from quiztrack.rules.loader import load_rules
from quiztrack.rules.models import Rules

ROOT = Path(__file__).resolve().parents[1]

# Monday
T0 = datetime(2026, 1, 5, 12, 0, 0, tzinfo=UTC)


class MockTimePort:
    """Mock time port for deterministic tests."""

    def __init__(self, now: datetime = T0) -> None:
        self._now = now

    def now_utc(self) -> datetime:
        return self._now

    def advance(self, seconds: float = 0, **kwargs: float) -> None:
        self._now += timedelta(seconds=seconds, **kwargs)

    def set(self, now: datetime) -> None:
        self._now = now


@pytest.fixture
def time_port() -> MockTimePort:
    return MockTimePort()


@pytest.fixture
def rules() -> Rules:
    """Real rules from the project root."""
    return load_rules(ROOT / "rules.yaml")


@pytest.fixture
def memory_store() -> InMemoryTrackingStore:
    return InMemoryTrackingStore()


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    """Migrated SQLite database file."""
    path = os.path.join(tmp_path, "quiztrack.db")
    SQLiteMigrator(path).run_migrations()
    return path


@pytest.fixture
def sqlite_store(db_path: str) -> SQLiteTrackingStore:
    return SQLiteTrackingStore(db_path)


EventFactory = Callable[..., Event]


@pytest.fixture
def make_event() -> EventFactory:
    """Build an Event for a site with sensible defaults."""

    def _make(
        site: Site,
        quiz_id: str = "quiz-1",
        kind: EventKind = EventKind.VIEW,
        at: datetime = T0,
        campaign: str | None = None,
        session_id: str | None = None,
        ip_hash: str = "a" * 16,
    ) -> Event:
        return Event(
            quiz_id=quiz_id,
            event_kind=kind,
            site_id=site.id,
            utm_campaign=campaign,
            session_id=session_id,
            ip_hash=ip_hash,
            created_at=at,
        )

    return _make
