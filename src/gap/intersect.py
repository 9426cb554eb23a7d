"""
Gap Intersection

Finds the "missing threads": referring domains that link to at least two
competitors but not to the target.

Built as a single pass reverse index over every competitor record, with
O(1) set lookups against the target's profile. When several competitors
report metadata for the same referring domain, the record with the highest
domain rating wins (then most backlinks, then earliest competitor).
"""

import logging
from typing import Dict, List, Sequence, Set, Tuple

from .aggregator import CompetitorProfile
from .errors import NoCompetitorsError
from .models import GapDomain, ReferringDomain

logger = logging.getLogger(__name__)


DEFAULT_MIN_COMPETITORS = 2


def _outranks(candidate: ReferringDomain, current: ReferringDomain) -> bool:
    """Metadata tie-break: strictly better rating, then strictly more backlinks."""
    if candidate.domain_rating != current.domain_rating:
        return candidate.domain_rating > current.domain_rating
    return candidate.backlinks > current.backlinks


def build_reverse_index(
    target_referring_domains: Set[str],
    competitor_profiles: Sequence[CompetitorProfile],
) -> Tuple[Dict[str, List[str]], Dict[str, ReferringDomain]]:
    """
    Map each non-target referring domain to the competitors it links to.

    Returns:
        (reverse_index, metadata) where metadata holds the winning record
        for each referring domain
    """
    reverse_index: Dict[str, List[str]] = {}
    metadata: Dict[str, ReferringDomain] = {}

    for profile in competitor_profiles:
        for record in profile.records:
            ref_domain = record.domain
            if ref_domain in target_referring_domains:
                continue

            linked = reverse_index.setdefault(ref_domain, [])
            # A profile may list the same referring domain twice
            if not linked or linked[-1] != profile.domain:
                linked.append(profile.domain)

            current = metadata.get(ref_domain)
            if current is None or _outranks(record, current):
                metadata[ref_domain] = record

    return reverse_index, metadata


def find_gap_domains(
    target_referring_domains: Set[str],
    competitor_profiles: Sequence[CompetitorProfile],
    min_competitors: int = DEFAULT_MIN_COMPETITORS,
) -> List[GapDomain]:
    """
    Compute gap domains across competitor profiles.

    Args:
        target_referring_domains: The target's referring domains
        competitor_profiles: Competitor profiles in resolution order
        min_competitors: Minimum competitors a domain must link to

    Returns:
        Unscored gap domains (ordering is finalized by the scorer)

    Raises:
        NoCompetitorsError: If there are no competitor profiles at all
        ValueError: If min_competitors < 1
    """
    if min_competitors < 1:
        raise ValueError(f"min_competitors must be >= 1, got {min_competitors}")

    if not competitor_profiles:
        raise NoCompetitorsError("No competitors to intersect")

    reverse_index, metadata = build_reverse_index(target_referring_domains, competitor_profiles)

    gap_domains = [
        GapDomain.from_referring_domain(metadata[ref_domain], linked)
        for ref_domain, linked in reverse_index.items()
        if len(linked) >= min_competitors
    ]

    high = sum(1 for g in gap_domains if g.domain_rating >= 50)
    medium = sum(1 for g in gap_domains if 30 <= g.domain_rating < 50)
    logger.info(
        f"Found {len(gap_domains)} gap domains (linking to {min_competitors}+ competitors, not target); "
        f"high authority: {high}, medium authority: {medium}"
    )
    return gap_domains
