"""
AggregationEngine - bucketed and total quiz statistics.

Key behaviors:
- Precise path: store-side grouped query
- Fallback path: coarse scan of recent events, aggregated here
- Degraded mode: empty rows with an explanatory error, never an exception
- Optional short-lived result cache keyed by the requested filters
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from collections.abc import Hashable, Iterable
from datetime import datetime
from typing import Any

from quiztrack.adapters.clock import SystemClock
from quiztrack.components.identity import UNKNOWN_SITE, normalize_domain
from quiztrack.core.entities import (
    AggregateRow,
    BucketType,
    CampaignRow,
    EventCount,
    EventFact,
    EventKind,
)
from quiztrack.core.errors import (
    AggregationError,
    QueryTimeoutError,
    QueryUnsupportedError,
    StoreUnavailableError,
)

from ._buckets import calculate_bucket_start, parse_bucket_type, resolve_window
from .models import (
    DEFAULT_CONFIG,
    AggregationConfig,
    CampaignQuery,
    CampaignStatsResult,
    CampaignTotals,
    StatsQuery,
    StatsResult,
    StatsSource,
)
from .ports import StatsRepoPort, TimePort

logger = logging.getLogger(__name__)

STORE_NOT_CONFIGURED = "Store not configured"


# --- Formatting ---


def conversion_rate(views: int, completes: int) -> float:
    """Completes per hundred views, clamped to [0, 100]."""
    if views <= 0:
        return 0.0
    return max(0.0, min(100.0, completes / views * 100))


def format_conversion_rate(views: int, completes: int, precision: int = 1) -> str:
    """Render a conversion rate such as "33.3%"."""
    return f"{conversion_rate(views, completes):.{precision}f}%"


# --- Row building ---


def tally_facts(
    facts: Iterable[EventFact],
    bucket_type: BucketType | None = None,
) -> list[EventCount]:
    """Group scanned events into counts per (bucket?, site, quiz)."""
    counts: dict[tuple[datetime | None, str, str], list[int]] = {}
    for fact in facts:
        bucket = calculate_bucket_start(fact.created_at, bucket_type) if bucket_type else None
        slot = counts.setdefault((bucket, fact.site, fact.quiz_id), [0, 0])
        if fact.event_kind == EventKind.VIEW:
            slot[0] += 1
        elif fact.event_kind == EventKind.COMPLETE:
            slot[1] += 1

    return [
        EventCount(bucket=bucket, site=site, quiz_id=quiz_id, views=v, completes=c)
        for (bucket, site, quiz_id), (v, c) in counts.items()
    ]


def tally_campaigns(facts: Iterable[EventFact]) -> list[EventCount]:
    """Group scanned events into counts per campaign."""
    counts: dict[str | None, list[int]] = {}
    for fact in facts:
        slot = counts.setdefault(fact.utm_campaign or None, [0, 0])
        if fact.event_kind == EventKind.VIEW:
            slot[0] += 1
        elif fact.event_kind == EventKind.COMPLETE:
            slot[1] += 1

    return [
        EventCount(campaign=campaign, views=v, completes=c)
        for campaign, (v, c) in counts.items()
    ]


def build_totals(counts: Iterable[EventCount], precision: int = 1) -> list[AggregateRow]:
    """Merge counts per (site, quiz), sorted by views descending."""
    merged: dict[tuple[str, str], list[int]] = {}
    for c in counts:
        slot = merged.setdefault((c.site, c.quiz_id), [0, 0])
        slot[0] += c.views
        slot[1] += c.completes

    rows = [
        AggregateRow(
            site=site,
            quiz_id=quiz_id,
            views=v,
            completes=done,
            conversion_rate=format_conversion_rate(v, done, precision),
        )
        for (site, quiz_id), (v, done) in merged.items()
    ]
    rows.sort(key=lambda r: (-r.views, r.site, r.quiz_id))
    return rows


def build_bucketed(counts: Iterable[EventCount], precision: int = 1) -> list[AggregateRow]:
    """Merge counts per (bucket, site, quiz), ascending by bucket."""
    merged: dict[tuple[datetime, str, str], list[int]] = {}
    for c in counts:
        if c.bucket is None:
            continue
        slot = merged.setdefault((c.bucket, c.site, c.quiz_id), [0, 0])
        slot[0] += c.views
        slot[1] += c.completes

    rows = [
        AggregateRow(
            bucket=bucket,
            site=site,
            quiz_id=quiz_id,
            views=v,
            completes=done,
            conversion_rate=format_conversion_rate(v, done, precision),
        )
        for (bucket, site, quiz_id), (v, done) in merged.items()
    ]
    rows.sort(key=lambda r: (r.bucket, r.site, r.quiz_id))
    return rows


def build_campaign_rows(
    counts: Iterable[EventCount],
    precision: int = 1,
    no_campaign_label: str = "(none)",
) -> list[CampaignRow]:
    """Merge counts per campaign label, sorted by views descending."""
    merged: dict[str, list[int]] = {}
    for c in counts:
        slot = merged.setdefault(c.campaign or no_campaign_label, [0, 0])
        slot[0] += c.views
        slot[1] += c.completes

    rows = [
        CampaignRow(
            campaign=label,
            views=v,
            completes=done,
            conversion_rate=format_conversion_rate(v, done, precision),
        )
        for label, (v, done) in merged.items()
    ]
    rows.sort(key=lambda r: (-r.views, r.campaign))
    return rows


# --- Cache ---


class StatsCache:
    """
    Thread-safe TTL cache for aggregation results.

    A TTL of zero disables caching. Oldest entries are evicted once
    max_entries is reached.
    """

    def __init__(
        self,
        ttl_seconds: float = 10.0,
        time_port: TimePort | None = None,
        max_entries: int = 256,
    ) -> None:
        self._ttl = ttl_seconds
        self._time = time_port or SystemClock()
        self._max_entries = max_entries
        self._entries: OrderedDict[Hashable, tuple[datetime, Any]] = OrderedDict()
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._ttl > 0

    def get(self, key: Hashable) -> Any | None:
        if not self.enabled:
            return None
        now = self._time.now_utc()
        with self._lock:
            hit = self._entries.get(key)
            if hit is None:
                return None
            stored_at, value = hit
            if (now - stored_at).total_seconds() >= self._ttl:
                del self._entries[key]
                return None
            return value

    def put(self, key: Hashable, value: Any) -> None:
        if not self.enabled:
            return
        now = self._time.now_utc()
        with self._lock:
            self._entries[key] = (now, value)
            self._entries.move_to_end(key)
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# --- Engine ---


class AggregationEngine:
    """
    Aggregation engine.

    Reads through the StatsRepoPort; repo=None means no store is
    configured and every query returns a degraded result.
    """

    def __init__(
        self,
        repo: StatsRepoPort | None = None,
        time_port: TimePort | None = None,
        config: AggregationConfig | None = None,
        cache: StatsCache | None = None,
    ) -> None:
        self._repo = repo
        self._time = time_port or SystemClock()
        self._config = config or DEFAULT_CONFIG
        self._cache = cache

    @property
    def config(self) -> AggregationConfig:
        return self._config

    def get_stats(self, query: StatsQuery) -> StatsResult:
        """
        Compute bucketed and total statistics.

        Raises:
            ValidationError: negative or out-of-range days, or start after end.
        """
        cfg = self._config
        bucket_type = parse_bucket_type(query.range, cfg.default_range)
        start, end = resolve_window(
            self._time.now_utc(),
            start_date=query.start_date,
            end_date=query.end_date,
            days=query.days,
            default_days=cfg.default_days,
        )
        raw_site = (query.site or "").strip()
        site = normalize_domain(raw_site) if raw_site else None
        # Not a hostname: matches no tracked site, including the "unknown" bucket
        unmatched_site = site == UNKNOWN_SITE and raw_site.lower() != UNKNOWN_SITE
        if unmatched_site:
            site = raw_site

        def result(**kwargs: Any) -> StatsResult:
            return StatsResult(
                range=bucket_type, site=site, days=query.days, start=start, end=end, **kwargs
            )

        if self._repo is None:
            return result(source=StatsSource.NONE, error=STORE_NOT_CONFIGURED)

        if unmatched_site:
            return result(source=StatsSource.PRECISE)

        key = ("stats", bucket_type, site, query.days, query.start_date, query.end_date)
        cached = self._cache.get(key) if self._cache else None
        if cached is not None:
            return cached

        p = cfg.rate_precision
        try:
            try:
                bucket_counts = self._repo.count_by_site_quiz(start, end, site, bucket_type)
                total_counts = self._repo.count_by_site_quiz(start, end, site, None)
                out = result(
                    bucketed=tuple(build_bucketed(bucket_counts, p)),
                    totals=tuple(build_totals(total_counts, p)),
                    source=StatsSource.PRECISE,
                )
            except (QueryTimeoutError, QueryUnsupportedError) as e:
                logger.warning("Precise stats query failed (%s); using coarse scan", e.reason)
                facts = self._repo.scan_events(
                    start, end, site=site, limit=cfg.fallback_event_limit
                )
                out = result(
                    bucketed=tuple(build_bucketed(tally_facts(facts, bucket_type), p)),
                    totals=tuple(build_totals(tally_facts(facts), p)),
                    source=StatsSource.FALLBACK,
                    warning=self._fallback_warning(len(facts)),
                )
        except (AggregationError, StoreUnavailableError) as e:
            logger.error("Stats query failed: %s", e)
            return result(source=StatsSource.NONE, error=str(e))

        if self._cache is not None:
            self._cache.put(key, out)
        return out

    def get_campaign_stats(self, query: CampaignQuery) -> CampaignStatsResult:
        """
        Compute per-campaign statistics for one quiz.

        Raises:
            ValidationError: start after end.
        """
        cfg = self._config
        start, end = resolve_window(
            self._time.now_utc(),
            start_date=query.start_date,
            end_date=query.end_date,
            default_days=cfg.default_days,
        )

        def result(**kwargs: Any) -> CampaignStatsResult:
            return CampaignStatsResult(quiz_id=query.quiz_id, start=start, end=end, **kwargs)

        if self._repo is None:
            return result(source=StatsSource.NONE, error=STORE_NOT_CONFIGURED)

        key = ("campaigns", query.quiz_id, query.start_date, query.end_date)
        cached = self._cache.get(key) if self._cache else None
        if cached is not None:
            return cached

        warning = None
        source = StatsSource.PRECISE
        try:
            try:
                counts = self._repo.count_by_campaign(query.quiz_id, start, end)
            except (QueryTimeoutError, QueryUnsupportedError) as e:
                logger.warning("Precise campaign query failed (%s); using coarse scan", e.reason)
                facts = self._repo.scan_events(
                    start, end, quiz_id=query.quiz_id, limit=cfg.fallback_event_limit
                )
                counts = tally_campaigns(facts)
                source = StatsSource.FALLBACK
                warning = self._fallback_warning(len(facts))
        except (AggregationError, StoreUnavailableError) as e:
            logger.error("Campaign stats query failed for quiz %s: %s", query.quiz_id, e)
            return result(source=StatsSource.NONE, error=str(e))

        rows = build_campaign_rows(counts, cfg.rate_precision, cfg.no_campaign_label)
        views = sum(r.views for r in rows)
        completes = sum(r.completes for r in rows)
        out = result(
            campaigns=tuple(rows),
            totals=CampaignTotals(
                views=views,
                completes=completes,
                conversion_rate=format_conversion_rate(views, completes, cfg.rate_precision),
            ),
            source=source,
            warning=warning,
        )

        if self._cache is not None:
            self._cache.put(key, out)
        return out

    def list_sites(self) -> list[str]:
        """Sorted onboarded domains; empty when the store is missing or down."""
        if self._repo is None:
            return []
        try:
            return sorted(set(self._repo.list_domains()))
        except StoreUnavailableError as e:
            logger.error("Failed to list sites: %s", e.reason)
            return []

    def _fallback_warning(self, scanned: int) -> str:
        limit = self._config.fallback_event_limit
        if scanned >= limit:
            return f"Approximate results: aggregated the {limit} most recent events only"
        return f"Approximate results: aggregated {scanned} events by direct scan"
