"""
Recorder component - Tracking event ingestion.

Invariants:
- I1: Raw client IPs are never stored or logged
- I2: Every stored Event references a resolved Site
- I3: Events are append-only; one row per accepted, non-duplicate call
- I4: Store failures surface as outcome "error", never as exceptions
"""

from __future__ import annotations

from ._impl import EventRecorder
from .models import RecordEventInput, RecorderConfig, RecordResult
from .ports import EventRepoPort, MonitorPort, SiteRepoPort, TimePort


def run_record(
    inp: RecordEventInput,
    *,
    event_repo: EventRepoPort | None,
    site_repo: SiteRepoPort | None,
    monitor: MonitorPort | None = None,
    time_port: TimePort | None = None,
    config: RecorderConfig | None = None,
) -> RecordResult:
    """
    Record a tracking event.

    Args:
        inp: Raw tracking call.
        event_repo: Event log port, or None when no store is configured.
        site_repo: Site port, or None when no store is configured.
        monitor: Optional recent-events sink.
        time_port: Optional time port.
        config: Optional recorder configuration.

    Returns:
        RecordResult describing the outcome.

    Raises:
        ValidationError: malformed input.
        RateLimitError: client over budget.
    """
    recorder = EventRecorder(
        event_repo=event_repo,
        site_repo=site_repo,
        monitor=monitor,
        time_port=time_port,
        config=config,
    )
    return recorder.record(inp)
