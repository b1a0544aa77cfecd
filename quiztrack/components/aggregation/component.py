"""
Aggregation component - Quiz conversion statistics.

Invariants:
- I1: sum of bucketed views/completes equals sum of totals for the same window
- I2: conversion rate is "0.0%" whenever views is zero
- I3: totals are sorted by views descending; bucketed rows ascending by bucket
- I4: store failures degrade to empty rows with an error, never an exception
"""

from __future__ import annotations

from ._impl import AggregationEngine, StatsCache
from .models import (
    AggregationConfig,
    CampaignQuery,
    CampaignStatsResult,
    StatsQuery,
    StatsResult,
)
from .ports import StatsRepoPort, TimePort


def run_get_stats(
    query: StatsQuery,
    *,
    repo: StatsRepoPort | None,
    time_port: TimePort | None = None,
    config: AggregationConfig | None = None,
    cache: StatsCache | None = None,
) -> StatsResult:
    """
    Get bucketed and total statistics.

    Args:
        query: Requested filters.
        repo: Stats port, or None when no store is configured.
        time_port: Optional time port.
        config: Optional aggregation configuration.
        cache: Optional shared result cache.

    Returns:
        StatsResult (degraded results carry source "none" and an error).

    Raises:
        ValidationError: malformed window.
    """
    engine = AggregationEngine(repo=repo, time_port=time_port, config=config, cache=cache)
    return engine.get_stats(query)


def run_get_campaign_stats(
    query: CampaignQuery,
    *,
    repo: StatsRepoPort | None,
    time_port: TimePort | None = None,
    config: AggregationConfig | None = None,
    cache: StatsCache | None = None,
) -> CampaignStatsResult:
    """Get per-campaign statistics for one quiz."""
    engine = AggregationEngine(repo=repo, time_port=time_port, config=config, cache=cache)
    return engine.get_campaign_stats(query)


def run_list_sites(*, repo: StatsRepoPort | None) -> list[str]:
    """List onboarded site domains."""
    return AggregationEngine(repo=repo).list_sites()
