"""
SQLite adapter tests against a migrated database file.
"""

from __future__ import annotations

import sqlite3
import threading
from contextlib import closing
from datetime import timedelta

import pytest

from quiztrack.adapters.sqlite.repos import (
    SQLiteStatsRepo,
    SQLiteTrackingStore,
    format_ts,
    parse_ts,
)
from quiztrack.components.aggregation import (
    AggregationEngine,
    CampaignQuery,
    StatsQuery,
    StatsSource,
)
from quiztrack.core.entities import BucketType, EventKind
from quiztrack.core.errors import (
    QueryTimeoutError,
    QueryUnsupportedError,
    StoreUnavailableError,
)

from tests.conftest import T0

V, C = EventKind.VIEW, EventKind.COMPLETE


def _query(db_path: str, sql: str) -> list[tuple]:
    with closing(sqlite3.connect(db_path)) as conn:
        return conn.execute(sql).fetchall()


def _seed(store: SQLiteTrackingStore, make_event, rows) -> None:
    """rows: (domain, quiz_id, kind, at, campaign)"""
    for domain, quiz_id, kind, at, campaign in rows:
        site = store.sites.upsert_site(domain)
        store.events.append(make_event(site, quiz_id=quiz_id, kind=kind, at=at, campaign=campaign))


class TestTimestamps:
    def test_round_trip_is_utc(self) -> None:
        assert parse_ts(format_ts(T0)) == T0

    def test_fixed_width_orders_as_text(self) -> None:
        early = format_ts(T0)
        late = format_ts(T0 + timedelta(microseconds=1))
        assert len(early) == len(late)
        assert early < late


class TestSiteRepo:
    def test_upsert_is_idempotent(self, db_path: str, sqlite_store: SQLiteTrackingStore) -> None:
        first = sqlite_store.sites.upsert_site("a.com")
        second = sqlite_store.sites.upsert_site("a.com")

        assert first.id == second.id
        assert _query(db_path, "SELECT COUNT(*) FROM sites") == [(1,)]
        assert sqlite_store.sites.get_by_domain("a.com") == first

    def test_concurrent_upsert_creates_one_row(self, db_path: str) -> None:
        """Racing first events for a new domain yield a single site."""
        ids: list[str] = []
        errors: list[Exception] = []

        def upsert() -> None:
            try:
                ids.append(SQLiteTrackingStore(db_path).sites.upsert_site("race.com").id)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=upsert) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(set(ids)) == 1
        assert _query(db_path, "SELECT COUNT(*) FROM sites") == [(1,)]

    def test_list_domains_sorted(self, sqlite_store: SQLiteTrackingStore) -> None:
        for domain in ["c.com", "a.com", "b.com"]:
            sqlite_store.sites.upsert_site(domain)

        assert sqlite_store.sites.list_domains() == ["a.com", "b.com", "c.com"]
        assert sqlite_store.stats.list_domains() == ["a.com", "b.com", "c.com"]

    def test_unknown_domain(self, sqlite_store: SQLiteTrackingStore) -> None:
        assert sqlite_store.sites.get_by_domain("nope.com") is None


class TestEventRepo:
    def test_append_and_read_back(
        self, db_path: str, sqlite_store: SQLiteTrackingStore, make_event
    ) -> None:
        site = sqlite_store.sites.upsert_site("a.com")
        event = make_event(site, campaign="spring", session_id="s1")

        sqlite_store.events.append(event)

        rows = _query(
            db_path,
            "SELECT id, quiz_id, event_kind, site_id, utm_campaign, session_id, ip_hash, created_at"
            " FROM events",
        )
        assert rows == [
            (
                event.id,
                event.quiz_id,
                "view",
                site.id,
                "spring",
                "s1",
                event.ip_hash,
                format_ts(event.created_at),
            )
        ]

    def test_unknown_site_rejected(self, sqlite_store: SQLiteTrackingStore, make_event) -> None:
        """Events must reference an onboarded site."""
        orphan = sqlite_store.sites.upsert_site("a.com").model_copy(update={"id": "missing"})

        with pytest.raises(StoreUnavailableError):
            sqlite_store.events.append(make_event(orphan))

    def test_count_recent_by_ip(self, sqlite_store: SQLiteTrackingStore, make_event) -> None:
        site = sqlite_store.sites.upsert_site("a.com")
        for age in (0, 30, 90):
            sqlite_store.events.append(make_event(site, at=T0 - timedelta(seconds=age)))
        sqlite_store.events.append(make_event(site, ip_hash="b" * 16))

        since = T0 - timedelta(seconds=60)
        assert sqlite_store.events.count_recent_by_ip("a" * 16, since) == 2
        assert sqlite_store.events.count_recent_by_ip("c" * 16, since) == 0

    def test_exists_recent(self, sqlite_store: SQLiteTrackingStore, make_event) -> None:
        site = sqlite_store.sites.upsert_site("a.com")
        sqlite_store.events.append(make_event(site, session_id="s1", at=T0))

        events = sqlite_store.events
        assert events.exists_recent("s1", "quiz-1", V, T0 - timedelta(seconds=60))
        assert events.exists_recent("s1", "quiz-1", V, T0)
        assert not events.exists_recent("s1", "quiz-1", C, T0 - timedelta(seconds=60))
        assert not events.exists_recent("s2", "quiz-1", V, T0 - timedelta(seconds=60))
        assert not events.exists_recent("s1", "quiz-1", V, T0 + timedelta(seconds=1))


class TestStatsRepo:
    @pytest.fixture
    def seeded(self, sqlite_store: SQLiteTrackingStore, make_event) -> SQLiteTrackingStore:
        _seed(
            sqlite_store,
            make_event,
            [
                ("a.com", "q1", V, T0, "spring"),
                ("a.com", "q1", V, T0 - timedelta(minutes=30), "spring"),
                ("a.com", "q1", C, T0 - timedelta(minutes=30), "spring"),
                ("a.com", "q1", V, T0 - timedelta(hours=13), None),  # Sunday 23:00
                ("b.com", "q2", V, T0 - timedelta(days=2), None),
            ],
        )
        return sqlite_store

    def test_totals(self, seeded: SQLiteTrackingStore) -> None:
        counts = seeded.stats.count_by_site_quiz(T0 - timedelta(days=30), T0)

        assert [(c.bucket, c.site, c.quiz_id, c.views, c.completes) for c in counts] == [
            (None, "a.com", "q1", 3, 1),
            (None, "b.com", "q2", 1, 0),
        ]

    def test_hour_buckets(self, seeded: SQLiteTrackingStore) -> None:
        counts = seeded.stats.count_by_site_quiz(
            T0 - timedelta(hours=1), T0, site="a.com", bucket_type=BucketType.HOUR
        )

        assert [(c.bucket, c.views, c.completes) for c in counts] == [
            (T0 - timedelta(hours=1), 1, 1),
            (T0, 1, 0),
        ]

    def test_day_buckets(self, seeded: SQLiteTrackingStore) -> None:
        counts = seeded.stats.count_by_site_quiz(
            T0 - timedelta(days=30), T0, site="a.com", bucket_type=BucketType.DAY
        )

        assert [(c.bucket.date().isoformat(), c.views) for c in counts] == [
            ("2026-01-04", 1),
            ("2026-01-05", 2),
        ]

    def test_week_buckets_start_monday(self, seeded: SQLiteTrackingStore) -> None:
        counts = seeded.stats.count_by_site_quiz(
            T0 - timedelta(days=30), T0, bucket_type=BucketType.WEEK
        )

        weeks = {(c.bucket.date().isoformat(), c.site): c.views for c in counts}
        assert weeks == {
            ("2025-12-29", "a.com"): 1,
            ("2026-01-05", "a.com"): 2,
            ("2025-12-29", "b.com"): 1,
        }
        assert all(c.bucket.weekday() == 0 for c in counts)

    def test_count_by_campaign(self, seeded: SQLiteTrackingStore) -> None:
        counts = seeded.stats.count_by_campaign("q1", T0 - timedelta(days=30), T0)

        assert {c.campaign: (c.views, c.completes) for c in counts} == {
            None: (1, 0),
            "spring": (2, 1),
        }

    def test_scan_newest_first_with_limit(self, seeded: SQLiteTrackingStore) -> None:
        facts = seeded.stats.scan_events(T0 - timedelta(days=30), T0, limit=2)

        assert [f.created_at for f in facts] == [T0, T0 - timedelta(minutes=30)]
        assert all(f.site == "a.com" for f in facts)

    def test_scan_filters(self, seeded: SQLiteTrackingStore) -> None:
        start = T0 - timedelta(days=30)
        assert len(seeded.stats.scan_events(start, T0, site="b.com")) == 1
        assert len(seeded.stats.scan_events(start, T0, quiz_id="q1")) == 4

    def test_missing_rollup_is_unsupported(self, seeded: SQLiteTrackingStore) -> None:
        conn = sqlite3.connect(seeded.db_path)
        conn.execute("DROP VIEW event_rollup")
        conn.commit()
        conn.close()

        with pytest.raises(QueryUnsupportedError):
            seeded.stats.count_by_site_quiz(T0 - timedelta(days=30), T0)

    def test_deadline_interrupts_query(self, db_path: str) -> None:
        repo = SQLiteStatsRepo(db_path, query_timeout_seconds=-1)
        sql = """
            WITH RECURSIVE n(i) AS (SELECT 1 UNION ALL SELECT i + 1 FROM n WHERE i < 1000000)
            SELECT COUNT(*) AS c FROM n
        """

        with pytest.raises(QueryTimeoutError):
            repo._aggregate(sql, [])

    def test_ping(self, sqlite_store: SQLiteTrackingStore) -> None:
        sqlite_store.stats.ping()

    def test_unreachable_database(self, tmp_path) -> None:
        repo = SQLiteStatsRepo(str(tmp_path / "missing" / "db.sqlite"))

        with pytest.raises(StoreUnavailableError):
            repo.ping()


class TestEngineOnSQLite:
    """Aggregation end to end over the SQLite adapter."""

    def test_stats_and_campaigns(self, sqlite_store: SQLiteTrackingStore, make_event, time_port):
        _seed(
            sqlite_store,
            make_event,
            [
                ("a.com", "q1", V, T0 - timedelta(hours=1), "spring"),
                ("a.com", "q1", V, T0 - timedelta(hours=2), None),
                ("a.com", "q1", V, T0 - timedelta(hours=3), None),
                ("a.com", "q1", C, T0 - timedelta(hours=1), "spring"),
            ],
        )
        engine = AggregationEngine(repo=sqlite_store.stats, time_port=time_port)

        stats = engine.get_stats(StatsQuery(range="hour"))
        assert stats.source == StatsSource.PRECISE
        assert stats.totals[0].conversion_rate == "33.3%"
        assert sum(r.views for r in stats.bucketed) == 3

        campaigns = engine.get_campaign_stats(CampaignQuery(quiz_id="q1"))
        assert [(r.campaign, r.views) for r in campaigns.campaigns] == [
            ("(none)", 2),
            ("spring", 1),
        ]

    def test_falls_back_without_rollup(
        self, sqlite_store: SQLiteTrackingStore, make_event, time_port
    ) -> None:
        _seed(sqlite_store, make_event, [("a.com", "q1", V, T0, None)])
        conn = sqlite3.connect(sqlite_store.db_path)
        conn.execute("DROP VIEW event_rollup")
        conn.commit()
        conn.close()

        result = AggregationEngine(repo=sqlite_store.stats, time_port=time_port).get_stats(
            StatsQuery()
        )

        assert result.source == StatsSource.FALLBACK
        assert result.total_views == 1
