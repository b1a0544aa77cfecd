"""
Aggregation component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from quiztrack.core.entities import AggregateRow, BucketType, CampaignRow


class StatsSource(str, Enum):
    """Which path produced a result."""

    PRECISE = "precise"  # store-side grouped query
    FALLBACK = "fallback"  # coarse scan, capped at fallback_event_limit
    NONE = "none"  # degraded: store missing or failing


@dataclass(frozen=True)
class AggregationConfig:
    """Aggregation configuration."""

    default_range: BucketType = BucketType.DAY
    default_days: int = 30

    # Coarse fallback scan cap
    fallback_event_limit: int = 1000

    # Conversion rate decimals
    rate_precision: int = 1

    # Result cache; 0 disables
    cache_ttl_seconds: float = 10.0
    cache_max_entries: int = 256

    no_campaign_label: str = "(none)"


DEFAULT_CONFIG = AggregationConfig()


# --- Input Models ---


@dataclass(frozen=True)
class StatsQuery:
    """Dashboard statistics filters, as requested."""

    range: str | None = None
    site: str | None = None
    days: int | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


@dataclass(frozen=True)
class CampaignQuery:
    """Per-campaign statistics filters for one quiz."""

    quiz_id: str
    start_date: datetime | None = None
    end_date: datetime | None = None


# --- Output Models ---


@dataclass(frozen=True)
class StatsResult:
    """Bucketed and total statistics."""

    range: BucketType
    site: str | None
    days: int | None
    start: datetime
    end: datetime
    bucketed: tuple[AggregateRow, ...] = ()
    totals: tuple[AggregateRow, ...] = ()
    source: StatsSource = StatsSource.PRECISE
    warning: str | None = None
    error: str | None = None

    @property
    def total_views(self) -> int:
        return sum(r.views for r in self.totals)

    @property
    def total_completes(self) -> int:
        return sum(r.completes for r in self.totals)


@dataclass(frozen=True)
class CampaignTotals:
    """Overall counts across a quiz's campaigns."""

    views: int = 0
    completes: int = 0
    conversion_rate: str = "0.0%"


@dataclass(frozen=True)
class CampaignStatsResult:
    """Per-campaign statistics for one quiz."""

    quiz_id: str
    start: datetime
    end: datetime
    campaigns: tuple[CampaignRow, ...] = ()
    totals: CampaignTotals = field(default_factory=CampaignTotals)
    source: StatsSource = StatsSource.PRECISE
    warning: str | None = None
    error: str | None = None
