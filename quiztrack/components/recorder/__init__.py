"""
Recorder component - validated, attributed event persistence.
"""

from ._impl import (
    EventRecorder,
    hash_client_ip,
    validate_event_kind,
    validate_optional,
    validate_quiz_id,
)
from .component import run_record
from .models import (
    RecordEventInput,
    RecorderConfig,
    RecordOutcome,
    RecordResult,
)
from .ports import EventRepoPort, SiteRepoPort, TimePort

__all__ = [
    # Entry points
    "run_record",
    # Models
    "RecordEventInput",
    "RecorderConfig",
    "RecordOutcome",
    "RecordResult",
    # Ports
    "EventRepoPort",
    "SiteRepoPort",
    "TimePort",
    # Implementation
    "EventRecorder",
    "hash_client_ip",
    "validate_event_kind",
    "validate_optional",
    "validate_quiz_id",
]
