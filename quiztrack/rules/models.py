from pydantic import BaseModel, Field


class ProjectRules(BaseModel):
    slug: str
    rules_version: str


class RateLimitRule(BaseModel):
    window_seconds: int = Field(gt=0)
    max_events: int = Field(gt=0)


class DedupeRule(BaseModel):
    window_seconds: int = Field(gt=0)


class FieldLimitRules(BaseModel):
    quiz_id: int = Field(gt=0)
    utm_campaign: int = Field(gt=0)
    session_id: int = Field(gt=0)
    site: int = Field(gt=0)


class TrackingRules(BaseModel):
    event_kinds: list[str]
    rate_limit: RateLimitRule
    dedupe: DedupeRule
    max_lengths: FieldLimitRules
    ip_hash_length: int = Field(ge=8, le=64)


class StatsRules(BaseModel):
    default_range: str
    default_days: int = Field(gt=0)
    cache_ttl_seconds: float = Field(ge=0)
    fallback_event_limit: int = Field(gt=0)
    query_timeout_seconds: float = Field(gt=0)
    conversion_rate_decimals: int = Field(ge=0, le=4)


class MonitorRules(BaseModel):
    capacity: int = Field(gt=0)


class Rules(BaseModel):
    project: ProjectRules
    tracking: TrackingRules
    stats: StatsRules
    monitor: MonitorRules
