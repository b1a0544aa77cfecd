"""
Identity component - Map inbound requests to tenant sites.

Invariants:
- I1: Resolution never rejects an event; unusable hints map to "unknown"
- I2: One Site row per normalized domain, even under concurrent first writes
"""

from __future__ import annotations

from ._impl import IdentityResolver, pick_domain_hint
from .models import ResolveSiteInput, ResolveSiteOutput
from .ports import SiteRepoPort


def run_resolve(inp: ResolveSiteInput, *, repo: SiteRepoPort) -> ResolveSiteOutput:
    """
    Resolve request hints to a stored site.

    Args:
        inp: Explicit site field and request headers.
        repo: Site repository port.

    Returns:
        ResolveSiteOutput with the stored site.
    """
    hint = pick_domain_hint(
        site=inp.site,
        origin=inp.origin,
        referer=inp.referer,
        host=inp.host,
    )
    site = IdentityResolver(repo).resolve(hint)
    return ResolveSiteOutput(site=site, domain_hint=hint)


def resolve_site(domain_hint: str | None, *, repo: SiteRepoPort) -> str:
    """Resolve a single domain hint to a site id."""
    return IdentityResolver(repo).resolve(domain_hint).id
