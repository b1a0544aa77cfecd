# quiztrack - Ports (Protocol Interfaces)
# Abstract interfaces for adapters; no implementations here

from quiztrack.core.ports.db import EventRepoPort, SiteRepoPort, StatsRepoPort
from quiztrack.core.ports.time import TimePort

__all__ = [
    "EventRepoPort",
    "SiteRepoPort",
    "StatsRepoPort",
    "TimePort",
]
