"""
Domain entities for quiztrack.

Rows read from or written to the durable store are validated into these
models at the adapter boundary, so every consumer sees one shape.

- Site: tenant keyed by normalized domain (append-only)
- Event: tracking event log entry (append-only, never mutated)
- AggregateRow / CampaignRow: derived statistics, computed on read
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    return datetime.now(UTC)


class EventKind(str, Enum):
    """Tracking event kinds."""

    VIEW = "view"
    COMPLETE = "complete"


class BucketType(str, Enum):
    """Time bucket sizes for charted statistics."""

    HOUR = "hour"
    DAY = "day"
    WEEK = "week"


# --- Site ---


class Site(BaseModel):
    """
    Tenant site.

    Invariants:
    - domain is unique and already normalized
    - rows are created on first event and never updated
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    domain: str
    created_at: datetime = Field(default_factory=utc_now)


# --- Event ---


class Event(BaseModel):
    """
    Tracking event (append-only log entry).

    Invariants:
    - site_id references an existing Site
    - ip_hash is a truncated one-way digest, never the raw address
    - created_at is assigned by the server
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    quiz_id: str = Field(min_length=1)
    event_kind: EventKind
    site_id: str
    utm_campaign: str | None = None
    session_id: str | None = None
    ip_hash: str
    created_at: datetime = Field(default_factory=utc_now)


class EventFact(BaseModel):
    """Event joined with its site domain, as scanned for coarse aggregation."""

    model_config = ConfigDict(frozen=True)

    quiz_id: str
    event_kind: EventKind
    site: str
    utm_campaign: str | None = None
    created_at: datetime


# --- Derived rows ---


class EventCount(BaseModel):
    """Grouped view/complete counts as returned by a store aggregation query."""

    model_config = ConfigDict(frozen=True)

    bucket: datetime | None = None
    site: str = ""
    quiz_id: str = ""
    campaign: str | None = None
    views: int = Field(default=0, ge=0)
    completes: int = Field(default=0, ge=0)


class AggregateRow(BaseModel):
    """Aggregated counts for one (bucket?, site, quiz) group."""

    model_config = ConfigDict(frozen=True)

    bucket: datetime | None = None
    site: str
    quiz_id: str
    views: int = Field(default=0, ge=0)
    completes: int = Field(default=0, ge=0)
    conversion_rate: str = "0.0%"


class CampaignRow(BaseModel):
    """Aggregated counts for one campaign of a quiz."""

    model_config = ConfigDict(frozen=True)

    campaign: str
    views: int = Field(default=0, ge=0)
    completes: int = Field(default=0, ge=0)
    conversion_rate: str = "0.0%"
