"""
Thread Starvation Classifier

Reduces a scored gap list to a single severity label based on how many
high-authority domains (DR 50+) link to competitors but not to the target.
"""

from dataclasses import dataclass
from typing import Iterable

from src.gap.models import GapDomain, ThreadStarvation


HIGH_AUTHORITY_THRESHOLD = 50
MEDIUM_AUTHORITY_THRESHOLD = 30


@dataclass(frozen=True)
class StarvationThresholds:
    """High-authority gap counts at which severity escalates."""
    moderate: int = 20
    severe: int = 50

    def __post_init__(self):
        if self.moderate > self.severe:
            raise ValueError(
                f"moderate threshold ({self.moderate}) exceeds severe threshold ({self.severe})"
            )


DEFAULT_THRESHOLDS = StarvationThresholds()


def count_high_authority_gaps(gap_domains: Iterable[GapDomain]) -> int:
    return sum(1 for g in gap_domains if g.domain_rating >= HIGH_AUTHORITY_THRESHOLD)


def count_medium_authority_gaps(gap_domains: Iterable[GapDomain]) -> int:
    return sum(
        1 for g in gap_domains
        if MEDIUM_AUTHORITY_THRESHOLD <= g.domain_rating < HIGH_AUTHORITY_THRESHOLD
    )


def classify_from_count(
    high_authority_gaps: int,
    thresholds: StarvationThresholds = DEFAULT_THRESHOLDS,
) -> ThreadStarvation:
    if high_authority_gaps >= thresholds.severe:
        return ThreadStarvation.SEVERE
    if high_authority_gaps >= thresholds.moderate:
        return ThreadStarvation.MODERATE
    return ThreadStarvation.MILD


def classify_thread_starvation(
    gap_domains: Iterable[GapDomain],
    thresholds: StarvationThresholds = DEFAULT_THRESHOLDS,
) -> ThreadStarvation:
    """Classify severity from the full gap domain list."""
    return classify_from_count(count_high_authority_gaps(gap_domains), thresholds)
