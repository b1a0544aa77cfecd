"""
Recorder component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from quiztrack.components.guard.models import GuardConfig
from quiztrack.core.entities import Event


class RecordOutcome(str, Enum):
    """What happened to an accepted tracking call."""

    STORED = "stored"
    DUPLICATE_SKIPPED = "duplicate-skipped"
    LOGGED = "logged"  # no store configured
    ERROR = "error"  # store failure; accepted but not stored


@dataclass(frozen=True)
class RecorderConfig:
    """Event recorder configuration."""

    allowed_event_kinds: frozenset[str] = field(
        default_factory=lambda: frozenset({"view", "complete"}),
    )

    # Field limits
    max_quiz_id_length: int = 200
    max_campaign_length: int = 200
    max_session_id_length: int = 200
    max_site_length: int = 255

    # Client fingerprint
    ip_hash_length: int = 16
    ip_hash_salt: str = ""

    guard: GuardConfig = field(default_factory=GuardConfig)


DEFAULT_CONFIG = RecorderConfig()


@dataclass(frozen=True)
class RecordEventInput:
    """Raw tracking call."""

    event_kind: str | None
    quiz_id: str | None
    site: str | None = None
    utm_campaign: str | None = None
    session_id: str | None = None
    client_ip: str | None = None


@dataclass(frozen=True)
class RecordResult:
    """Result of recording a tracking call."""

    outcome: RecordOutcome
    event_kind: str
    quiz_id: str
    site: str
    event: Event | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome != RecordOutcome.ERROR
