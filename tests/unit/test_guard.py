"""
Tests for the abuse guard (rate limit and dedup).
"""

from __future__ import annotations

from datetime import datetime

import pytest

from quiztrack.adapters.memory_store import InMemoryTrackingStore
from quiztrack.components.guard import (
    AbuseGuard,
    GuardConfig,
    GuardDecision,
    GuardInput,
    run_guard,
)
from quiztrack.core.entities import EventKind, Site
from quiztrack.core.errors import StoreUnavailableError

IP = "f" * 16


class FailingStore:
    """Store whose queries always fail."""

    def count_recent_by_ip(self, ip_hash: str, since: datetime) -> int:
        raise StoreUnavailableError("connection refused")

    def exists_recent(
        self, session_id: str, quiz_id: str, event_kind: EventKind, since: datetime
    ) -> bool:
        raise StoreUnavailableError("connection refused")


@pytest.fixture
def site(memory_store: InMemoryTrackingStore) -> Site:
    return memory_store.upsert_site("example.com")


@pytest.fixture
def guard(memory_store, time_port) -> AbuseGuard:
    return AbuseGuard(store=memory_store, time_port=time_port)


def _input(session_id: str | None = None, kind: EventKind = EventKind.VIEW) -> GuardInput:
    return GuardInput(ip_hash=IP, quiz_id="quiz-1", event_kind=kind, session_id=session_id)


class TestRateLimit:
    """Test the per-client sliding window."""

    def test_under_limit_allowed(self, guard, memory_store, site, make_event, time_port) -> None:
        """Nine recent events still allow a tenth."""
        for _ in range(9):
            memory_store.append(make_event(site, at=time_port.now_utc(), ip_hash=IP))

        result = guard.evaluate(_input())
        assert result.decision == GuardDecision.ALLOW
        assert result.recent_count == 9

    def test_at_limit_rejected(self, guard, memory_store, site, make_event, time_port) -> None:
        """Ten events in the window reject the eleventh."""
        for _ in range(10):
            memory_store.append(make_event(site, at=time_port.now_utc(), ip_hash=IP))

        result = guard.evaluate(_input())
        assert result.decision == GuardDecision.RATE_LIMITED
        assert not result.allowed

    def test_window_slides(self, guard, memory_store, site, make_event, time_port) -> None:
        """Events older than the window no longer count."""
        for _ in range(10):
            memory_store.append(make_event(site, at=time_port.now_utc(), ip_hash=IP))

        time_port.advance(61)
        assert guard.evaluate(_input()).decision == GuardDecision.ALLOW

    def test_other_clients_unaffected(
        self, guard, memory_store, site, make_event, time_port
    ) -> None:
        """The budget is per client fingerprint."""
        for _ in range(10):
            memory_store.append(make_event(site, at=time_port.now_utc(), ip_hash="0" * 16))

        assert guard.evaluate(_input()).decision == GuardDecision.ALLOW

    def test_rate_limit_checked_before_dedup(
        self, guard, memory_store, site, make_event, time_port
    ) -> None:
        """An over-budget duplicate is reported as rate limited."""
        for _ in range(10):
            memory_store.append(
                make_event(site, at=time_port.now_utc(), ip_hash=IP, session_id="s1")
            )

        assert guard.evaluate(_input("s1")).decision == GuardDecision.RATE_LIMITED


class TestDedup:
    """Test per-session duplicate suppression."""

    def test_duplicate_within_window(
        self, guard, memory_store, site, make_event, time_port
    ) -> None:
        """Same session, quiz and kind 30s later is a duplicate."""
        memory_store.append(make_event(site, at=time_port.now_utc(), session_id="s1"))
        time_port.advance(30)

        assert guard.evaluate(_input("s1")).decision == GuardDecision.DUPLICATE

    def test_allowed_after_window(self, guard, memory_store, site, make_event, time_port) -> None:
        """Same session 61s later is allowed again."""
        memory_store.append(make_event(site, at=time_port.now_utc(), session_id="s1"))
        time_port.advance(61)

        assert guard.evaluate(_input("s1")).decision == GuardDecision.ALLOW

    def test_different_kind_not_duplicate(
        self, guard, memory_store, site, make_event, time_port
    ) -> None:
        """A complete after a view in the same session is not a duplicate."""
        memory_store.append(make_event(site, at=time_port.now_utc(), session_id="s1"))

        assert guard.evaluate(_input("s1", EventKind.COMPLETE)).decision == GuardDecision.ALLOW

    def test_no_session_never_duplicate(
        self, guard, memory_store, site, make_event, time_port
    ) -> None:
        """Without a session id dedup does not apply."""
        memory_store.append(make_event(site, at=time_port.now_utc()))

        assert guard.evaluate(_input(None)).decision == GuardDecision.ALLOW


class TestFailOpen:
    """Test failure-open behavior."""

    def test_store_errors_allow(self, time_port) -> None:
        """Store errors during both checks allow the event."""
        result = run_guard(_input("s1"), store=FailingStore(), time_port=time_port)

        assert result.decision == GuardDecision.ALLOW
        assert result.failed_open is True
        assert result.recent_count is None

    def test_disabled_guard_allows(self, memory_store, site, make_event, time_port) -> None:
        """A disabled guard skips both checks."""
        for _ in range(20):
            memory_store.append(make_event(site, at=time_port.now_utc(), ip_hash=IP))

        result = run_guard(
            _input(),
            store=memory_store,
            time_port=time_port,
            config=GuardConfig(enabled=False),
        )
        assert result.decision == GuardDecision.ALLOW

    def test_custom_limits(self, memory_store, site, make_event, time_port) -> None:
        """Window and budget come from configuration."""
        for _ in range(3):
            memory_store.append(make_event(site, at=time_port.now_utc(), ip_hash=IP))

        result = run_guard(
            _input(),
            store=memory_store,
            time_port=time_port,
            config=GuardConfig(rate_limit_max_events=3),
        )
        assert result.decision == GuardDecision.RATE_LIMITED
