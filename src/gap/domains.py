"""
Domain Normalization

Canonicalizes site identifiers to bare hostnames so that every stage of the
gap analysis compares like with like:
- Full URLs ("https://www.Example.com/blog")
- Bare hostnames ("example.com")
- Search Console domain properties ("sc-domain:example.com")
- Search Console URL-prefix properties ("https://example.com/")

Aggregate property sets ("sc-set:...") are rejected outright since no
single domain can be derived from them.
"""

import logging
import re
from typing import Iterable, List, Optional
from urllib.parse import urlsplit

from .errors import InvalidDomainError, UnsupportedIdentifier

logger = logging.getLogger(__name__)


SC_DOMAIN_PREFIX = "sc-domain:"
SC_SET_PREFIX = "sc-set:"

_LABEL_RE = re.compile(r"^(?!-)[a-z0-9_\-\u00a1-\uffff]{1,63}(?<!-)$")


def normalize_domain(identifier: Optional[str]) -> str:
    """
    Convert a site identifier to its canonical hostname.

    Args:
        identifier: URL, hostname, or Search Console property identifier

    Returns:
        Lowercase hostname without scheme, port, path or leading "www."

    Raises:
        UnsupportedIdentifier: For aggregate property sets (sc-set:)
        InvalidDomainError: For empty or malformed identifiers
    """
    if identifier is None or not str(identifier).strip():
        raise InvalidDomainError("Empty site identifier", identifier)

    value = str(identifier).strip()
    lowered = value.lower()

    if lowered.startswith(SC_SET_PREFIX):
        raise UnsupportedIdentifier(
            f"Cannot derive a domain from property set '{value}'",
            identifier,
        )

    if lowered.startswith(SC_DOMAIN_PREFIX):
        value = value[len(SC_DOMAIN_PREFIX):].strip()

    if "://" not in value:
        value = f"https://{value}"

    try:
        host = urlsplit(value).hostname
    except ValueError as e:
        raise InvalidDomainError(f"Malformed site identifier '{identifier}': {e}", identifier) from e

    if not host:
        raise InvalidDomainError(f"No hostname in site identifier '{identifier}'", identifier)

    host = host.rstrip(".")
    if host.startswith("www."):
        host = host[4:]

    labels = host.split(".")
    if host != "localhost" and len(labels) < 2:
        raise InvalidDomainError(f"'{identifier}' is not a fully qualified domain", identifier)
    if not all(_LABEL_RE.match(label) for label in labels):
        raise InvalidDomainError(f"'{identifier}' contains an invalid hostname", identifier)

    return host


def normalize_domains(identifiers: Iterable[str]) -> List[str]:
    """
    Normalize a list of identifiers, dropping duplicates but keeping order.

    The first invalid identifier raises; nothing is silently skipped.
    """
    seen = set()
    domains = []
    for identifier in identifiers:
        domain = normalize_domain(identifier)
        if domain in seen:
            logger.debug(f"Dropping duplicate domain {domain} ({identifier})")
            continue
        seen.add(domain)
        domains.append(domain)
    return domains
