"""
Identity component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass

from quiztrack.core.entities import Site


@dataclass(frozen=True)
class ResolveSiteInput:
    """Raw request hints for site resolution."""

    site: str | None = None
    origin: str | None = None
    referer: str | None = None
    host: str | None = None


@dataclass(frozen=True)
class ResolveSiteOutput:
    """Resolved site plus the hint it was derived from."""

    site: Site
    domain_hint: str
