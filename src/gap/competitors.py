"""
Competitor Resolution

Supplies the competitor set for a gap analysis, either from the caller's
manual list or from organic-competitor discovery. Manual entries are
validated up front so a bad identifier fails before any network call.
"""

import logging
from typing import List, Optional, Sequence, TYPE_CHECKING

from .domains import normalize_domain, normalize_domains
from .errors import InvalidDomainError
from .models import Competitor

if TYPE_CHECKING:
    from src.collector.client import AhrefsClient

logger = logging.getLogger(__name__)


def build_manual_competitors(target: str, identifiers: Sequence[str]) -> List[Competitor]:
    """
    Turn caller-supplied identifiers into Competitor records.

    Metrics are unknown for manual competitors, so common_keywords is None.

    Raises:
        InvalidDomainError: If any identifier cannot be normalized
    """
    domains = normalize_domains(identifiers)
    competitors = [
        Competitor(domain=domain, manual=True)
        for domain in domains
        if domain != target
    ]
    if len(competitors) < len(domains):
        logger.info(f"Dropped target {target} from manual competitor list")
    return competitors


def clean_discovered_competitors(target: str, discovered: Sequence[Competitor]) -> List[Competitor]:
    """Normalize discovered competitors, skipping unusable and duplicate entries."""
    seen = {target}
    competitors = []
    for competitor in discovered:
        try:
            domain = normalize_domain(competitor.domain)
        except InvalidDomainError as e:
            logger.warning(f"Skipping discovered competitor '{competitor.domain}': {e}")
            continue
        if domain in seen:
            continue
        seen.add(domain)
        competitor.domain = domain
        competitors.append(competitor)
    return competitors


async def resolve_competitors(
    provider: "AhrefsClient",
    target: str,
    country: str = "us",
    manual_competitors: Optional[Sequence[str]] = None,
    limit: int = 10,
) -> List[Competitor]:
    """
    Resolve the competitor set for a target domain.

    Args:
        provider: Object exposing get_organic_competitors()
        target: Normalized target domain
        country: Country code for discovery
        manual_competitors: Caller-supplied identifiers (skips discovery)
        limit: Max competitors to discover

    Returns:
        Competitors in resolution order; may be empty

    Raises:
        InvalidDomainError: If a manual identifier is invalid
    """
    if manual_competitors:
        competitors = build_manual_competitors(target, manual_competitors)
        logger.info(
            f"Using {len(competitors)} manual competitors: "
            f"{', '.join(c.domain for c in competitors)}"
        )
        return competitors

    logger.info(f"Discovering up to {limit} competitors for {target} ({country})")
    try:
        discovered = await provider.get_organic_competitors(target, country=country, limit=limit)
    except Exception as e:
        logger.warning(f"Competitor discovery failed for {target}: {e}")
        return []

    competitors = clean_discovered_competitors(target, discovered or [])
    logger.info(f"Resolved {len(competitors)} competitors for {target}")
    return competitors
