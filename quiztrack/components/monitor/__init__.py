"""
Monitor component - bounded buffer of recently received events.
"""

from ._impl import DEFAULT_CAPACITY, RecentEventsBuffer
from .component import run_snapshot
from .models import MonitorEntry, MonitorSnapshot, QuizSummary
from .ports import MonitorPort

__all__ = [
    "run_snapshot",
    "DEFAULT_CAPACITY",
    "RecentEventsBuffer",
    "MonitorEntry",
    "MonitorPort",
    "MonitorSnapshot",
    "QuizSummary",
]
