"""
AbuseGuard - per-client rate limiting and per-session deduplication.

Key behaviors:
- Rate limit: >= max events for an ip_hash within the trailing window rejects
- Dedup: same (session_id, quiz_id, event_kind) within the window is skipped
- Rate limit is evaluated before dedup
- Failure-open: a store error during either check allows the event
- Windows are sliding and evaluated at write time against the event log
"""

from __future__ import annotations

import logging
from datetime import timedelta

from quiztrack.adapters.clock import SystemClock
from quiztrack.core.errors import StoreUnavailableError

from .models import DEFAULT_CONFIG, GuardConfig, GuardDecision, GuardInput, GuardResult
from .ports import GuardStorePort, TimePort

logger = logging.getLogger(__name__)


class AbuseGuard:
    """
    Abuse guard evaluated before any write.

    Holds no state of its own; every decision is derived from the event log,
    so concurrent requests may both pass at the window boundary.
    """

    def __init__(
        self,
        store: GuardStorePort,
        time_port: TimePort | None = None,
        config: GuardConfig | None = None,
    ) -> None:
        self._store = store
        self._time = time_port or SystemClock()
        self._config = config or DEFAULT_CONFIG

    def check_rate_limit(self, ip_hash: str) -> tuple[bool, int | None]:
        """
        Check the sliding-window budget for a client fingerprint.

        Returns (allowed, recent_count). recent_count is None when the
        check failed open.
        """
        since = self._time.now_utc() - timedelta(seconds=self._config.rate_limit_window_seconds)
        try:
            count = self._store.count_recent_by_ip(ip_hash, since)
        except StoreUnavailableError:
            logger.warning("Rate limit check failed; allowing event", exc_info=True)
            return True, None

        return count < self._config.rate_limit_max_events, count

    def check_duplicate(self, inp: GuardInput) -> bool | None:
        """
        Check whether the session already fired this event recently.

        Returns None when the check failed open.
        """
        if not inp.session_id:
            return False

        since = self._time.now_utc() - timedelta(seconds=self._config.dedupe_window_seconds)
        try:
            return self._store.exists_recent(
                session_id=inp.session_id,
                quiz_id=inp.quiz_id,
                event_kind=inp.event_kind,
                since=since,
            )
        except StoreUnavailableError:
            logger.warning("Duplicate check failed; allowing event", exc_info=True)
            return None

    def evaluate(self, inp: GuardInput) -> GuardResult:
        """Run rate limit then dedup."""
        if not self._config.enabled:
            return GuardResult(decision=GuardDecision.ALLOW)

        allowed, count = self.check_rate_limit(inp.ip_hash)
        if not allowed:
            logger.info(
                "Rate limited client %s (%s events in %ss)",
                inp.ip_hash,
                count,
                self._config.rate_limit_window_seconds,
            )
            return GuardResult(decision=GuardDecision.RATE_LIMITED, recent_count=count)

        duplicate = self.check_duplicate(inp)
        if duplicate:
            logger.info(
                "Skipping duplicate %s for quiz %s (session %s)",
                inp.event_kind.value,
                inp.quiz_id,
                inp.session_id,
            )
            return GuardResult(decision=GuardDecision.DUPLICATE, recent_count=count)

        return GuardResult(
            decision=GuardDecision.ALLOW,
            recent_count=count,
            failed_open=count is None or duplicate is None,
        )
