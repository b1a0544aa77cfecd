"""
Guard component - Abuse mitigation before persistence.

Invariants:
- I1: Rate limit is checked before duplicate suppression
- I2: Checks are advisory; store errors never block an event
- I3: Duplicates are reported, not raised; rate limits are the caller's 429
"""

from __future__ import annotations

from ._impl import AbuseGuard
from .models import GuardConfig, GuardInput, GuardResult
from .ports import GuardStorePort, TimePort


def run_guard(
    inp: GuardInput,
    *,
    store: GuardStorePort,
    time_port: TimePort | None = None,
    config: GuardConfig | None = None,
) -> GuardResult:
    """
    Evaluate the abuse checks for a candidate event.

    Args:
        inp: Candidate event fingerprint.
        store: Event log query port.
        time_port: Optional time port.
        config: Optional guard configuration.

    Returns:
        GuardResult with the decision.
    """
    guard = AbuseGuard(store=store, time_port=time_port, config=config)
    return guard.evaluate(inp)
