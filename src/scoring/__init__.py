"""
Scoring Module for Loom's Gap

This module provides the two gap scoring calculations:

1. **Thread Resonance** (0-100)
   Per-domain priority: authority weighted by competitor coverage and
   by how relevant the linking competitors are to the target.

2. **Thread Starvation** (MILD / MODERATE / SEVERE)
   Site-level severity from the number of high-authority gaps.

Example Usage:
    from src.scoring import score_gap_domains, classify_thread_starvation

    ranked = score_gap_domains(gap_domains, competitors)
    starvation = classify_thread_starvation(ranked)
"""

from .resonance import (
    MAX_RESONANCE,
    RELEVANCE_NORMALIZER,
    ResonanceAnalysis,
    analyze_thread_resonance,
    average_common_keywords,
    calculate_thread_resonance,
    resonance_sort_key,
    score_gap_domains,
)

from .starvation import (
    DEFAULT_THRESHOLDS,
    HIGH_AUTHORITY_THRESHOLD,
    MEDIUM_AUTHORITY_THRESHOLD,
    StarvationThresholds,
    classify_from_count,
    classify_thread_starvation,
    count_high_authority_gaps,
    count_medium_authority_gaps,
)

__all__ = [
    # Thread Resonance
    "MAX_RESONANCE",
    "RELEVANCE_NORMALIZER",
    "ResonanceAnalysis",
    "analyze_thread_resonance",
    "average_common_keywords",
    "calculate_thread_resonance",
    "resonance_sort_key",
    "score_gap_domains",

    # Thread Starvation
    "DEFAULT_THRESHOLDS",
    "HIGH_AUTHORITY_THRESHOLD",
    "MEDIUM_AUTHORITY_THRESHOLD",
    "StarvationThresholds",
    "classify_from_count",
    "classify_thread_starvation",
    "count_high_authority_gaps",
    "count_medium_authority_gaps",
]
