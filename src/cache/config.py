"""
Cache Configuration

Centralized configuration for the gap analysis cache.

Note: The cache lives in the application database (gap_analysis_cache
table). No Redis required.
"""

import os
from dataclasses import dataclass, field
from datetime import timedelta
from functools import lru_cache


@dataclass(frozen=True)
class CacheTTL:
    """
    Cache TTL configuration by data type.

    Backlink profiles move slowly; a weekly refresh is enough for the
    dashboard's gap card, and callers can always force a refresh.
    """

    GAP_ANALYSIS: timedelta = timedelta(days=7)


@dataclass
class CacheConfig:
    """
    Main cache configuration.

    Settings can be overridden via environment variables:
    - CACHE_ENABLED: Enable/disable caching globally
    - GAP_CACHE_TTL_DAYS: Lifetime of a cached gap analysis
    """

    enabled: bool = field(default_factory=lambda: os.getenv(
        "CACHE_ENABLED",
        "true"
    ).lower() == "true")

    gap_analysis_ttl: timedelta = field(default_factory=lambda: timedelta(
        days=int(os.getenv("GAP_CACHE_TTL_DAYS", CacheTTL.GAP_ANALYSIS.days))
    ))


@lru_cache(maxsize=1)
def get_cache_config() -> CacheConfig:
    """Get singleton cache configuration."""
    return CacheConfig()
