"""
Monitor component port definitions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from .models import MonitorEntry


class TimePort(Protocol):
    """Time provider interface."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...


class MonitorPort(Protocol):
    """Sink for received tracking calls."""

    def push(
        self,
        event: str,
        quiz_id: str,
        site: str,
        saved: str,
        utm_campaign: str | None = None,
    ) -> MonitorEntry:
        """Record a received call."""
        ...
