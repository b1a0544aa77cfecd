"""
EventRecorder - validate, guard, attribute and persist one tracking event.

Key behaviors:
- Only "view"/"complete" with a non-empty quiz id are accepted
- The client IP is reduced to a salted, truncated SHA-256 digest
- Order: validation, rate limit, dedup, site resolution, append
- Store failures are reported as outcome "error", never raised
- Without a configured store, events are logged only (outcome "logged")
"""

from __future__ import annotations

import hashlib
import logging

from quiztrack.adapters.clock import SystemClock
from quiztrack.components.guard import AbuseGuard, GuardDecision, GuardInput
from quiztrack.components.identity import IdentityResolver, normalize_domain
from quiztrack.core.entities import Event, EventKind
from quiztrack.core.errors import RateLimitError, StoreUnavailableError, ValidationError

from .models import (
    DEFAULT_CONFIG,
    RecordEventInput,
    RecorderConfig,
    RecordOutcome,
    RecordResult,
)
from .ports import EventRepoPort, MonitorPort, SiteRepoPort, TimePort

logger = logging.getLogger(__name__)


# --- Validation Functions ---


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def validate_event_kind(
    event_kind: str | None,
    config: RecorderConfig = DEFAULT_CONFIG,
) -> EventKind:
    """Validate and parse the event kind."""
    kind = _clean(event_kind)
    if not kind:
        raise ValidationError("Missing event or quizId", field_name="event")

    if kind not in config.allowed_event_kinds:
        raise ValidationError(f"Invalid event type: '{kind}'", field_name="event")

    try:
        return EventKind(kind)
    except ValueError:
        raise ValidationError(f"Invalid event type: '{kind}'", field_name="event") from None


def validate_quiz_id(
    quiz_id: str | None,
    config: RecorderConfig = DEFAULT_CONFIG,
) -> str:
    """Validate the quiz id is present and bounded."""
    cleaned = _clean(quiz_id)
    if not cleaned:
        raise ValidationError("Missing event or quizId", field_name="quizId")

    if len(cleaned) > config.max_quiz_id_length:
        raise ValidationError(
            f"quizId exceeds {config.max_quiz_id_length} characters",
            field_name="quizId",
        )
    return cleaned


def validate_optional(value: str | None, field_name: str, max_length: int) -> str | None:
    """Strip an optional string field and enforce its length limit."""
    cleaned = _clean(value)
    if cleaned is not None and len(cleaned) > max_length:
        raise ValidationError(
            f"{field_name} exceeds {max_length} characters",
            field_name=field_name,
        )
    return cleaned


def hash_client_ip(client_ip: str | None, salt: str = "", length: int = 16) -> str:
    """One-way client fingerprint; the raw address never leaves this function."""
    material = f"{salt}:{client_ip or 'unknown'}"
    return hashlib.sha256(material.encode()).hexdigest()[:length]


# --- Event Recorder ---


class EventRecorder:
    """
    Event recorder.

    Persists exactly one Event per accepted call unless the guard
    deduplicates or rate limits it.
    """

    def __init__(
        self,
        event_repo: EventRepoPort | None = None,
        site_repo: SiteRepoPort | None = None,
        monitor: MonitorPort | None = None,
        time_port: TimePort | None = None,
        config: RecorderConfig | None = None,
    ) -> None:
        self._events = event_repo
        self._sites = site_repo
        self._monitor = monitor
        self._time = time_port or SystemClock()
        self._config = config or DEFAULT_CONFIG

    @property
    def store_configured(self) -> bool:
        return self._events is not None and self._sites is not None

    def record(self, inp: RecordEventInput) -> RecordResult:
        """
        Record one tracking call.

        Raises:
            ValidationError: malformed kind, quiz id or field lengths.
            RateLimitError: client fingerprint over budget.
        """
        cfg = self._config
        kind = validate_event_kind(inp.event_kind, cfg)
        quiz_id = validate_quiz_id(inp.quiz_id, cfg)
        campaign = validate_optional(inp.utm_campaign, "utm_campaign", cfg.max_campaign_length)
        session_id = validate_optional(inp.session_id, "session_id", cfg.max_session_id_length)
        site_hint = validate_optional(inp.site, "site", cfg.max_site_length)

        domain = normalize_domain(site_hint)
        ip_hash = hash_client_ip(inp.client_ip, cfg.ip_hash_salt, cfg.ip_hash_length)

        if self._events is None or self._sites is None:
            logger.info(
                "Store not configured; logged %s for quiz %s on %s", kind.value, quiz_id, domain
            )
            return self._finish(RecordOutcome.LOGGED, kind, quiz_id, domain, campaign)

        guard = AbuseGuard(store=self._events, time_port=self._time, config=cfg.guard)
        verdict = guard.evaluate(
            GuardInput(
                ip_hash=ip_hash,
                quiz_id=quiz_id,
                event_kind=kind,
                session_id=session_id,
            )
        )

        if verdict.decision == GuardDecision.RATE_LIMITED:
            raise RateLimitError(
                max_events=cfg.guard.rate_limit_max_events,
                window_seconds=cfg.guard.rate_limit_window_seconds,
            )

        if verdict.decision == GuardDecision.DUPLICATE:
            return self._finish(RecordOutcome.DUPLICATE_SKIPPED, kind, quiz_id, domain, campaign)

        try:
            site = IdentityResolver(self._sites).resolve(domain)
            event = self._events.append(
                Event(
                    quiz_id=quiz_id,
                    event_kind=kind,
                    site_id=site.id,
                    utm_campaign=campaign,
                    session_id=session_id,
                    ip_hash=ip_hash,
                    created_at=self._time.now_utc(),
                )
            )
        except StoreUnavailableError as e:
            logger.error("Failed to store %s for quiz %s: %s", kind.value, quiz_id, e.reason)
            return self._finish(RecordOutcome.ERROR, kind, quiz_id, domain, campaign, error=str(e))

        logger.info("Stored %s for quiz %s on %s", kind.value, quiz_id, site.domain)
        return self._finish(RecordOutcome.STORED, kind, quiz_id, site.domain, campaign, event=event)

    def _finish(
        self,
        outcome: RecordOutcome,
        kind: EventKind,
        quiz_id: str,
        site: str,
        campaign: str | None,
        event: Event | None = None,
        error: str | None = None,
    ) -> RecordResult:
        if self._monitor is not None:
            self._monitor.push(
                event=kind.value,
                quiz_id=quiz_id,
                site=site,
                saved=outcome.value,
                utm_campaign=campaign,
            )
        return RecordResult(
            outcome=outcome,
            event_kind=kind.value,
            quiz_id=quiz_id,
            site=site,
            event=event,
            error=error,
        )
