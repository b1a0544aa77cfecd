"""
Aggregation component - bucketed statistics with fallback and degraded modes.
"""

from ._buckets import (
    calculate_bucket_start,
    ensure_utc,
    parse_bucket_type,
    resolve_window,
)
from ._impl import (
    STORE_NOT_CONFIGURED,
    AggregationEngine,
    StatsCache,
    build_bucketed,
    build_campaign_rows,
    build_totals,
    conversion_rate,
    format_conversion_rate,
    tally_campaigns,
    tally_facts,
)
from .component import run_get_campaign_stats, run_get_stats, run_list_sites
from .models import (
    AggregationConfig,
    CampaignQuery,
    CampaignStatsResult,
    CampaignTotals,
    StatsQuery,
    StatsResult,
    StatsSource,
)
from .ports import StatsRepoPort, TimePort

__all__ = [
    # Entry points
    "run_get_stats",
    "run_get_campaign_stats",
    "run_list_sites",
    # Models
    "AggregationConfig",
    "CampaignQuery",
    "CampaignStatsResult",
    "CampaignTotals",
    "StatsQuery",
    "StatsResult",
    "StatsSource",
    # Ports
    "StatsRepoPort",
    "TimePort",
    # Implementation
    "STORE_NOT_CONFIGURED",
    "AggregationEngine",
    "StatsCache",
    "build_bucketed",
    "build_campaign_rows",
    "build_totals",
    "conversion_rate",
    "format_conversion_rate",
    "tally_campaigns",
    "tally_facts",
    # Buckets
    "calculate_bucket_start",
    "ensure_utc",
    "parse_bucket_type",
    "resolve_window",
]
