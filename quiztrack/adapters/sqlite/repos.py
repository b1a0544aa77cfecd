"""
SQLite store adapter.

Implements the site, event and stats ports using SQLite, written in
Postgres-compatible SQL. Timestamps are stored as fixed-width UTC ISO-8601
text so that string comparison orders them correctly.

Driver errors never leave this module: they are translated into
StoreUnavailableError or AggregationError subclasses.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from datetime import UTC, datetime
from typing import Any

from quiztrack.core.entities import BucketType, Event, EventCount, EventFact, EventKind, Site
from quiztrack.core.errors import (
    AggregationError,
    QueryTimeoutError,
    QueryUnsupportedError,
    StoreUnavailableError,
)

logger = logging.getLogger(__name__)

BUSY_TIMEOUT_SECONDS = 5.0
DEFAULT_QUERY_TIMEOUT_SECONDS = 5.0
PROGRESS_STEPS = 1000

# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def format_ts(dt: datetime) -> str:
    """Fixed-width UTC text, e.g. 2026-01-05T09:30:00.000000+00:00."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S.%f+00:00")


def parse_ts(s: str) -> datetime:
    """Parse stored timestamp text."""
    dt = datetime.fromisoformat(s)
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=UTC)


BUCKET_SQL = {
    BucketType.HOUR: "substr(created_at, 1, 13) || ':00:00+00:00'",
    BucketType.DAY: "substr(created_at, 1, 10) || 'T00:00:00+00:00'",
    BucketType.WEEK: (
        "date(substr(created_at, 1, 10), 'weekday 0', '-6 days') || 'T00:00:00+00:00'"
    ),
}


def translate_query_error(e: sqlite3.Error) -> Exception:
    """Map a driver error raised by an aggregation query."""
    message = str(e)
    if isinstance(e, sqlite3.OperationalError):
        if "interrupted" in message:
            return QueryTimeoutError(message)
        if "no such table: event_rollup" in message:
            return QueryUnsupportedError(message)
        if "unable to open" in message or "locked" in message:
            return StoreUnavailableError(message)
        return AggregationError(message)
    return StoreUnavailableError(message)


# -----------------------------------------------------------------------------
# Base SQLite Repository
# -----------------------------------------------------------------------------


class SQLiteRepoBase:
    """Base class for SQLite repositories."""

    def __init__(
        self,
        db_path: str,
        connection: sqlite3.Connection | None = None,
        query_timeout_seconds: float = DEFAULT_QUERY_TIMEOUT_SECONDS,
    ):
        self.db_path = db_path
        self._external_conn = connection
        self.query_timeout_seconds = query_timeout_seconds

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (uses external if provided)."""
        if self._external_conn is not None:
            return self._external_conn

        try:
            conn = sqlite3.connect(self.db_path, timeout=BUSY_TIMEOUT_SECONDS)
            conn.execute("PRAGMA foreign_keys = ON;")
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"cannot open {self.db_path}: {e}") from e
        conn.row_factory = dict_factory
        return conn

    def _should_close(self) -> bool:
        """Whether to close connection after use."""
        return self._external_conn is None

    def _release(self, conn: sqlite3.Connection) -> None:
        if self._should_close():
            conn.close()

    def _aggregate(self, sql: str, params: list[Any]) -> list[dict[str, Any]]:
        """Run an aggregation query under the per-query deadline."""
        conn = self._get_conn()
        deadline = time.monotonic() + self.query_timeout_seconds

        def past_deadline() -> int:
            return 1 if time.monotonic() > deadline else 0

        conn.set_progress_handler(past_deadline, PROGRESS_STEPS)
        try:
            return conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            logger.warning("Aggregation query failed: %s", e)
            raise translate_query_error(e) from e
        finally:
            conn.set_progress_handler(None, 0)
            self._release(conn)


# -----------------------------------------------------------------------------
# Sites
# -----------------------------------------------------------------------------


class SQLiteSiteRepo(SQLiteRepoBase):
    """SQLite implementation of SiteRepoPort."""

    def upsert_site(self, domain: str) -> Site:
        candidate = Site(domain=domain)
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO sites (id, domain, created_at) VALUES (?, ?, ?)
                ON CONFLICT (domain) DO NOTHING
                """,
                (candidate.id, candidate.domain, format_ts(candidate.created_at)),
            )
            conn.commit()
            row = conn.execute("SELECT * FROM sites WHERE domain = ?", (domain,)).fetchone()
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"site upsert failed: {e}") from e
        finally:
            self._release(conn)

        if row is None:
            raise StoreUnavailableError(f"site row missing after upsert: {domain}")
        return self._map_row(row)

    def get_by_domain(self, domain: str) -> Site | None:
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM sites WHERE domain = ?", (domain,)).fetchone()
            return self._map_row(row) if row else None
        except sqlite3.Error as e:
            raise StoreUnavailableError(str(e)) from e
        finally:
            self._release(conn)

    def list_domains(self) -> list[str]:
        conn = self._get_conn()
        try:
            rows = conn.execute("SELECT domain FROM sites ORDER BY domain ASC").fetchall()
            return [r["domain"] for r in rows]
        except sqlite3.Error as e:
            raise StoreUnavailableError(str(e)) from e
        finally:
            self._release(conn)

    def _map_row(self, row: dict[str, Any]) -> Site:
        return Site(id=row["id"], domain=row["domain"], created_at=parse_ts(row["created_at"]))


# -----------------------------------------------------------------------------
# Events
# -----------------------------------------------------------------------------


class SQLiteEventRepo(SQLiteRepoBase):
    """SQLite implementation of EventRepoPort."""

    def append(self, event: Event) -> Event:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO events (
                    id, quiz_id, event_kind, site_id, utm_campaign,
                    session_id, ip_hash, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    event.id,
                    event.quiz_id,
                    event.event_kind.value,
                    event.site_id,
                    event.utm_campaign,
                    event.session_id,
                    event.ip_hash,
                    format_ts(event.created_at),
                ),
            )
            conn.commit()
            return event
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"event append failed: {e}") from e
        finally:
            self._release(conn)

    def count_recent_by_ip(self, ip_hash: str, since: datetime) -> int:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT COUNT(*) AS n FROM events WHERE ip_hash = ? AND created_at >= ?",
                (ip_hash, format_ts(since)),
            ).fetchone()
            return int(row["n"])
        except sqlite3.Error as e:
            raise StoreUnavailableError(str(e)) from e
        finally:
            self._release(conn)

    def exists_recent(
        self,
        session_id: str,
        quiz_id: str,
        event_kind: EventKind,
        since: datetime,
    ) -> bool:
        conn = self._get_conn()
        try:
            row = conn.execute(
                """
                SELECT 1 FROM events
                WHERE session_id = ? AND quiz_id = ? AND event_kind = ? AND created_at >= ?
                LIMIT 1
                """,
                (session_id, quiz_id, event_kind.value, format_ts(since)),
            ).fetchone()
            return row is not None
        except sqlite3.Error as e:
            raise StoreUnavailableError(str(e)) from e
        finally:
            self._release(conn)


# -----------------------------------------------------------------------------
# Statistics
# -----------------------------------------------------------------------------


class SQLiteStatsRepo(SQLiteRepoBase):
    """SQLite implementation of StatsRepoPort (precise path reads event_rollup)."""

    def count_by_site_quiz(
        self,
        start: datetime,
        end: datetime,
        site: str | None = None,
        bucket_type: BucketType | None = None,
    ) -> list[EventCount]:
        bucket_expr = BUCKET_SQL[bucket_type] if bucket_type else "NULL"
        query = f"""
            SELECT {bucket_expr} AS bucket, site, quiz_id,
                   SUM(is_view) AS views, SUM(is_complete) AS completes
            FROM event_rollup
            WHERE created_at >= ? AND created_at <= ?
        """
        params: list[Any] = [format_ts(start), format_ts(end)]

        if site:
            query += " AND site = ?"
            params.append(site)

        if bucket_type:
            query += " GROUP BY bucket, site, quiz_id ORDER BY bucket, site, quiz_id"
        else:
            query += " GROUP BY site, quiz_id ORDER BY site, quiz_id"

        rows = self._aggregate(query, params)
        return [
            EventCount(
                bucket=parse_ts(r["bucket"]) if r["bucket"] else None,
                site=r["site"],
                quiz_id=r["quiz_id"],
                views=r["views"] or 0,
                completes=r["completes"] or 0,
            )
            for r in rows
        ]

    def count_by_campaign(
        self,
        quiz_id: str,
        start: datetime,
        end: datetime,
    ) -> list[EventCount]:
        rows = self._aggregate(
            """
            SELECT campaign, SUM(is_view) AS views, SUM(is_complete) AS completes
            FROM event_rollup
            WHERE quiz_id = ? AND created_at >= ? AND created_at <= ?
            GROUP BY campaign
            ORDER BY campaign
            """,
            [quiz_id, format_ts(start), format_ts(end)],
        )
        return [
            EventCount(
                quiz_id=quiz_id,
                campaign=r["campaign"],
                views=r["views"] or 0,
                completes=r["completes"] or 0,
            )
            for r in rows
        ]

    def scan_events(
        self,
        start: datetime,
        end: datetime,
        site: str | None = None,
        quiz_id: str | None = None,
        limit: int = 1000,
    ) -> list[EventFact]:
        query = """
            SELECT e.quiz_id, e.event_kind, s.domain AS site, e.utm_campaign, e.created_at
            FROM events e
            JOIN sites s ON s.id = e.site_id
            WHERE e.created_at >= ? AND e.created_at <= ?
        """
        params: list[Any] = [format_ts(start), format_ts(end)]

        if site:
            query += " AND s.domain = ?"
            params.append(site)

        if quiz_id:
            query += " AND e.quiz_id = ?"
            params.append(quiz_id)

        query += " ORDER BY e.created_at DESC LIMIT ?"
        params.append(limit)

        conn = self._get_conn()
        try:
            rows = conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            raise StoreUnavailableError(f"event scan failed: {e}") from e
        finally:
            self._release(conn)

        return [
            EventFact(
                quiz_id=r["quiz_id"],
                event_kind=EventKind(r["event_kind"]),
                site=r["site"],
                utm_campaign=r["utm_campaign"],
                created_at=parse_ts(r["created_at"]),
            )
            for r in rows
        ]

    def list_domains(self) -> list[str]:
        return SQLiteSiteRepo(self.db_path, self._external_conn).list_domains()

    def ping(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute("SELECT 1 FROM events LIMIT 1").fetchall()
        except sqlite3.Error as e:
            raise StoreUnavailableError(str(e)) from e
        finally:
            self._release(conn)


# -----------------------------------------------------------------------------
# Store
# -----------------------------------------------------------------------------


class SQLiteTrackingStore:
    """Repositories over one database file, lazily created."""

    def __init__(
        self,
        db_path: str,
        connection: sqlite3.Connection | None = None,
        query_timeout_seconds: float = DEFAULT_QUERY_TIMEOUT_SECONDS,
    ):
        self.db_path = db_path
        self._conn = connection
        self._query_timeout = query_timeout_seconds

        self._sites: SQLiteSiteRepo | None = None
        self._events: SQLiteEventRepo | None = None
        self._stats: SQLiteStatsRepo | None = None

    @property
    def sites(self) -> SQLiteSiteRepo:
        if self._sites is None:
            self._sites = SQLiteSiteRepo(self.db_path, self._conn)
        return self._sites

    @property
    def events(self) -> SQLiteEventRepo:
        if self._events is None:
            self._events = SQLiteEventRepo(self.db_path, self._conn)
        return self._events

    @property
    def stats(self) -> SQLiteStatsRepo:
        if self._stats is None:
            self._stats = SQLiteStatsRepo(self.db_path, self._conn, self._query_timeout)
        return self._stats
