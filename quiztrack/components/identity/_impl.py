"""
Identity resolution - request headers to a stable site.

Key behaviors:
- Domain hint precedence: explicit site field, Origin, Referer, Host
- Normalization never raises; unusable input maps to the "unknown" site
- Site creation is an atomic store upsert keyed by normalized domain
"""

from __future__ import annotations

import logging
import re
from urllib.parse import urlsplit

from quiztrack.core.entities import Site
from quiztrack.core.ports.db import SiteRepoPort

logger = logging.getLogger(__name__)

UNKNOWN_SITE = "unknown"

# RFC 1123 labels; also admits IPv4 literals and single-label hosts (localhost)
_LABEL = re.compile(r"^(?!-)[a-z0-9-]{1,63}(?<!-)$")
_MAX_DOMAIN_LENGTH = 253


def pick_domain_hint(
    site: str | None = None,
    origin: str | None = None,
    referer: str | None = None,
    host: str | None = None,
) -> str:
    """Return the first non-empty hint in precedence order, else "unknown"."""
    for candidate in (site, origin, referer, host):
        if candidate and candidate.strip() and candidate.strip().lower() != "null":
            return candidate.strip()
    return UNKNOWN_SITE


def normalize_domain(raw: str | None) -> str:
    """
    Normalize a domain hint to a bare lowercase hostname.

    Accepts hostnames, host:port pairs and full URLs. Drops the scheme,
    credentials, port, path, a leading "www." and trailing dots.
    """
    if not raw:
        return UNKNOWN_SITE

    value = raw.strip().lower()
    if not value:
        return UNKNOWN_SITE

    # urlsplit only fills netloc when a scheme or "//" prefix is present
    if "://" not in value and not value.startswith("//"):
        value = "//" + value

    try:
        host = urlsplit(value).hostname
    except ValueError:
        return UNKNOWN_SITE

    if not host:
        return UNKNOWN_SITE

    host = host.rstrip(".")
    if host.startswith("www."):
        host = host[4:]

    if not host or len(host) > _MAX_DOMAIN_LENGTH:
        return UNKNOWN_SITE

    if not all(_LABEL.match(label) for label in host.split(".")):
        return UNKNOWN_SITE

    return host


class IdentityResolver:
    """Resolves domain hints to stored sites."""

    def __init__(self, repo: SiteRepoPort) -> None:
        self._repo = repo

    def resolve(self, domain_hint: str | None) -> Site:
        """
        Normalize the hint and upsert the site.

        Store failures propagate as StoreUnavailableError; the caller decides
        how to degrade.
        """
        domain = normalize_domain(domain_hint)
        site = self._repo.upsert_site(domain)
        logger.debug("Resolved site %s -> %s", domain, site.id)
        return site
