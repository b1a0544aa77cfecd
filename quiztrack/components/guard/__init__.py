"""
Guard component - rate limiting and duplicate suppression.
"""

from ._impl import AbuseGuard
from .component import run_guard
from .models import (
    GuardConfig,
    GuardDecision,
    GuardInput,
    GuardResult,
)
from .ports import GuardStorePort, TimePort

__all__ = [
    "run_guard",
    "GuardConfig",
    "GuardDecision",
    "GuardInput",
    "GuardResult",
    "GuardStorePort",
    "TimePort",
    "AbuseGuard",
]
