"""
Thread Resonance Calculator

Scores each gap domain (0-100) by how well-aligned the missing link is with
the target's niche and how much authority it carries.

Formula:
    avg_common_keywords = mean(common_keywords of linked competitors)
    relevance_factor    = min(avg_common_keywords / RELEVANCE_NORMALIZER, 1.0)
    raw_score           = competitors_linked × domain_rating × relevance_factor / 100
    thread_resonance    = round(min(raw_score, 100))

RELEVANCE_NORMALIZER (100 shared keywords = fully on-topic) is an empirical
choice and can be tuned per analysis.

Ordering of scored domains:
    thread_resonance desc, domain_rating desc, competitors_linked desc, domain asc
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional

from src.gap.models import Competitor, GapDomain

logger = logging.getLogger(__name__)


RELEVANCE_NORMALIZER = 100.0
MAX_RESONANCE = 100


@dataclass
class ResonanceAnalysis:
    """Thread Resonance with its intermediate factors."""
    domain: str
    thread_resonance: int
    avg_common_keywords: float
    relevance_factor: float
    raw_score: float


def average_common_keywords(
    competitors_linked: Iterable[str],
    competitors: Mapping[str, Competitor],
) -> float:
    """
    Mean shared-keyword count over the linked competitors whose count is known.

    Returns 0.0 when no linked competitor has a known count.
    """
    known = [
        competitors[domain].common_keywords
        for domain in competitors_linked
        if domain in competitors and competitors[domain].common_keywords is not None
    ]
    return sum(known) / len(known) if known else 0.0


def analyze_thread_resonance(
    gap_domain: GapDomain,
    competitors: Mapping[str, Competitor],
    relevance_normalizer: float = RELEVANCE_NORMALIZER,
) -> ResonanceAnalysis:
    """
    Calculate Thread Resonance with full breakdown.

    Args:
        gap_domain: Gap domain to score
        competitors: Competitor records keyed by domain
        relevance_normalizer: Shared keywords that count as fully on-topic

    Returns:
        ResonanceAnalysis
    """
    if relevance_normalizer <= 0:
        raise ValueError(f"relevance_normalizer must be positive, got {relevance_normalizer}")

    avg_common = average_common_keywords(gap_domain.competitors_linked, competitors)
    relevance_factor = min(max(avg_common, 0.0) / relevance_normalizer, 1.0)

    raw_score = (gap_domain.competitors_linked_count * gap_domain.domain_rating * relevance_factor) / 100
    score = int(round(min(max(raw_score, 0.0), MAX_RESONANCE)))

    return ResonanceAnalysis(
        domain=gap_domain.domain,
        thread_resonance=score,
        avg_common_keywords=avg_common,
        relevance_factor=relevance_factor,
        raw_score=raw_score,
    )


def calculate_thread_resonance(
    gap_domain: GapDomain,
    competitors: Mapping[str, Competitor],
    relevance_normalizer: float = RELEVANCE_NORMALIZER,
) -> int:
    """Thread Resonance score (0-100) for one gap domain."""
    return analyze_thread_resonance(gap_domain, competitors, relevance_normalizer).thread_resonance


def resonance_sort_key(gap_domain: GapDomain):
    return (
        -gap_domain.thread_resonance,
        -gap_domain.domain_rating,
        -gap_domain.competitors_linked_count,
        gap_domain.domain,
    )


def score_gap_domains(
    gap_domains: List[GapDomain],
    competitors: Iterable[Competitor],
    relevance_normalizer: Optional[float] = None,
) -> List[GapDomain]:
    """
    Assign Thread Resonance to every gap domain and sort best-first.

    Args:
        gap_domains: Unscored gap domains
        competitors: Competitor records (for common_keywords)
        relevance_normalizer: Override for RELEVANCE_NORMALIZER

    Returns:
        The same GapDomain objects, scored and sorted
    """
    normalizer = RELEVANCE_NORMALIZER if relevance_normalizer is None else relevance_normalizer
    by_domain: Dict[str, Competitor] = {c.domain: c for c in competitors}

    for gap_domain in gap_domains:
        gap_domain.thread_resonance = calculate_thread_resonance(gap_domain, by_domain, normalizer)

    scored = sorted(gap_domains, key=resonance_sort_key)

    if scored:
        logger.info(
            f"Scored {len(scored)} gap domains; top resonance {scored[0].thread_resonance} "
            f"({scored[0].domain})"
        )
    return scored
