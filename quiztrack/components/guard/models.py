"""
Guard component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from quiztrack.core.entities import EventKind


class GuardDecision(str, Enum):
    """Outcome of the abuse checks."""

    ALLOW = "allow"
    RATE_LIMITED = "rate_limited"
    DUPLICATE = "duplicate"


@dataclass(frozen=True)
class GuardConfig:
    """Abuse guard configuration."""

    enabled: bool = True

    # Sliding-window rate limit per client fingerprint
    rate_limit_window_seconds: int = 60
    rate_limit_max_events: int = 10

    # Per-session duplicate suppression window
    dedupe_window_seconds: int = 60


DEFAULT_CONFIG = GuardConfig()


@dataclass(frozen=True)
class GuardInput:
    """Candidate event as seen by the guard."""

    ip_hash: str
    quiz_id: str
    event_kind: EventKind
    session_id: str | None = None


@dataclass(frozen=True)
class GuardResult:
    """Guard verdict."""

    decision: GuardDecision
    recent_count: int | None = None
    failed_open: bool = False

    @property
    def allowed(self) -> bool:
        return self.decision == GuardDecision.ALLOW
