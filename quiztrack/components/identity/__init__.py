"""
Identity component - request to site resolution.
"""

from ._impl import (
    UNKNOWN_SITE,
    IdentityResolver,
    normalize_domain,
    pick_domain_hint,
)
from .component import resolve_site, run_resolve
from .models import ResolveSiteInput, ResolveSiteOutput
from .ports import SiteRepoPort

__all__ = [
    # Entry points
    "run_resolve",
    "resolve_site",
    # Models
    "ResolveSiteInput",
    "ResolveSiteOutput",
    # Ports
    "SiteRepoPort",
    # Implementation
    "UNKNOWN_SITE",
    "IdentityResolver",
    "normalize_domain",
    "pick_domain_hint",
]
