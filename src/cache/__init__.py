"""
Gap Analysis Caching Layer

Finished analyses are stored per Search Console property for seven days in
the application database. Manual-competitor runs and explicit refreshes
bypass the cache (see GapAnalysisOrchestrator).

Usage:
    with get_db_context() as db:
        cache = GapAnalysisCache(db)
        result = cache.get("sc-domain:example.com", country="us")
"""

from src.cache.config import CacheConfig, CacheTTL, get_cache_config
from src.cache.gap_cache import GapAnalysisCache, analysis_type_for, get_gap_cache

__all__ = [
    "CacheConfig",
    "CacheTTL",
    "get_cache_config",
    "GapAnalysisCache",
    "analysis_type_for",
    "get_gap_cache",
]
