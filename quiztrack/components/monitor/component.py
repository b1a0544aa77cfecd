"""
Monitor component - Recent tracking calls for live debugging.

Invariants:
- I1: At most `capacity` entries are held; oldest evicted first
- I2: The buffer is process-local and never persisted
"""

from __future__ import annotations

from ._impl import RecentEventsBuffer
from .models import MonitorSnapshot


def run_snapshot(*, buffer: RecentEventsBuffer) -> MonitorSnapshot:
    """Return the buffered entries and per-quiz summary."""
    return buffer.snapshot()
