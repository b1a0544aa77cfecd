"""
Identity component port definitions.
"""

from __future__ import annotations

from typing import Protocol

from quiztrack.core.entities import Site


class SiteRepoPort(Protocol):
    """Site upsert interface."""

    def upsert_site(self, domain: str) -> Site:
        """Insert the domain if absent and return the stored row."""
        ...
