import os
from functools import lru_cache
from pathlib import Path

from fastapi import Depends, Request

from quiztrack.adapters.clock import SystemClock
from quiztrack.adapters.sqlite.repos import (
    SQLiteEventRepo,
    SQLiteSiteRepo,
    SQLiteStatsRepo,
)
from quiztrack.components.aggregation import (
    AggregationConfig,
    AggregationEngine,
    StatsCache,
    parse_bucket_type,
)
from quiztrack.components.guard import GuardConfig
from quiztrack.components.monitor import RecentEventsBuffer
from quiztrack.components.recorder import EventRecorder, RecorderConfig
from quiztrack.core.ports import EventRepoPort, SiteRepoPort, StatsRepoPort, TimePort
from quiztrack.rules.loader import load_rules
from quiztrack.rules.models import Rules


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        # Unset means no store: tracking only logs, stats are degraded
        self.db_path = os.environ.get("QUIZTRACK_DB_PATH") or None
        self.rules_path = Path(
            os.environ.get("QUIZTRACK_RULES_PATH", str(self.base_dir / "rules.yaml"))
        )
        self.ip_salt = os.environ.get("QUIZTRACK_IP_SALT", "")
        self.cors_origins = [
            o.strip() for o in os.environ.get("QUIZTRACK_CORS_ORIGINS", "*").split(",") if o.strip()
        ]
        self.log_level = os.environ.get("QUIZTRACK_LOG_LEVEL", "INFO").upper()

    @property
    def store_configured(self) -> bool:
        return self.db_path is not None


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules() -> Rules:
    return load_rules(get_settings().rules_path)


def recorder_config_from_rules(rules: Rules, ip_salt: str = "") -> RecorderConfig:
    tracking = rules.tracking
    return RecorderConfig(
        allowed_event_kinds=frozenset(tracking.event_kinds),
        max_quiz_id_length=tracking.max_lengths.quiz_id,
        max_campaign_length=tracking.max_lengths.utm_campaign,
        max_session_id_length=tracking.max_lengths.session_id,
        max_site_length=tracking.max_lengths.site,
        ip_hash_length=tracking.ip_hash_length,
        ip_hash_salt=ip_salt,
        guard=GuardConfig(
            rate_limit_window_seconds=tracking.rate_limit.window_seconds,
            rate_limit_max_events=tracking.rate_limit.max_events,
            dedupe_window_seconds=tracking.dedupe.window_seconds,
        ),
    )


def aggregation_config_from_rules(rules: Rules) -> AggregationConfig:
    stats = rules.stats
    return AggregationConfig(
        default_range=parse_bucket_type(stats.default_range),
        default_days=stats.default_days,
        fallback_event_limit=stats.fallback_event_limit,
        rate_precision=stats.conversion_rate_decimals,
        cache_ttl_seconds=stats.cache_ttl_seconds,
    )


def get_recorder_config(
    rules: Rules = Depends(get_rules),
    settings: Settings = Depends(get_settings),
) -> RecorderConfig:
    return recorder_config_from_rules(rules, settings.ip_salt)


def get_aggregation_config(rules: Rules = Depends(get_rules)) -> AggregationConfig:
    return aggregation_config_from_rules(rules)


# --- Time ---
def get_time_port() -> TimePort:
    return SystemClock()


# --- Repos (None when no store is configured) ---
def get_site_repo(settings: Settings = Depends(get_settings)) -> SiteRepoPort | None:
    return SQLiteSiteRepo(settings.db_path) if settings.db_path else None


def get_event_repo(settings: Settings = Depends(get_settings)) -> EventRepoPort | None:
    return SQLiteEventRepo(settings.db_path) if settings.db_path else None


def get_stats_repo(
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
) -> StatsRepoPort | None:
    if not settings.db_path:
        return None
    return SQLiteStatsRepo(
        settings.db_path, query_timeout_seconds=rules.stats.query_timeout_seconds
    )


# --- Shared state (app.state) ---
def get_monitor(
    request: Request,
    rules: Rules = Depends(get_rules),
    time_port: TimePort = Depends(get_time_port),
) -> RecentEventsBuffer:
    state = request.app.state
    if getattr(state, "monitor", None) is None:
        state.monitor = RecentEventsBuffer(capacity=rules.monitor.capacity, time_port=time_port)
    return state.monitor


def get_stats_cache(
    request: Request,
    config: AggregationConfig = Depends(get_aggregation_config),
    time_port: TimePort = Depends(get_time_port),
) -> StatsCache:
    state = request.app.state
    if getattr(state, "stats_cache", None) is None:
        state.stats_cache = StatsCache(
            ttl_seconds=config.cache_ttl_seconds,
            time_port=time_port,
            max_entries=config.cache_max_entries,
        )
    return state.stats_cache


# --- Component Services ---
def get_event_recorder(
    event_repo: EventRepoPort | None = Depends(get_event_repo),
    site_repo: SiteRepoPort | None = Depends(get_site_repo),
    monitor: RecentEventsBuffer = Depends(get_monitor),
    time_port: TimePort = Depends(get_time_port),
    config: RecorderConfig = Depends(get_recorder_config),
) -> EventRecorder:
    """Get event recorder component service."""
    return EventRecorder(
        event_repo=event_repo,
        site_repo=site_repo,
        monitor=monitor,
        time_port=time_port,
        config=config,
    )


def get_aggregation_engine(
    repo: StatsRepoPort | None = Depends(get_stats_repo),
    time_port: TimePort = Depends(get_time_port),
    config: AggregationConfig = Depends(get_aggregation_config),
    cache: StatsCache = Depends(get_stats_cache),
) -> AggregationEngine:
    """Get aggregation engine component service."""
    return AggregationEngine(repo=repo, time_port=time_port, config=config, cache=cache)
