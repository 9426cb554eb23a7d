"""
Gap Analysis Cache

Time-boxed cache of finished gap analyses, keyed by Search Console property,
stored in the application database (gap_analysis_cache table).

Every failure is raised as CacheError so the orchestrator can log it and
fall back to a fresh computation. Concurrent writers for the same property
are not serialized: the last write wins.
"""

import json
import logging
from datetime import datetime, timedelta
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.cache.config import CacheTTL, get_cache_config
from src.database.models import GapAnalysisCacheEntry
from src.gap.errors import CacheError
from src.gap.models import AnalysisResult


logger = logging.getLogger(__name__)


ANALYSIS_TYPE_PREFIX = "looms_gap"


def analysis_type_for(country: str) -> str:
    """Cache namespace for a discovery country (discovery results differ per country)."""
    return f"{ANALYSIS_TYPE_PREFIX}:{(country or 'us').lower()}"


class GapAnalysisCache:
    """
    Database-backed cache for AnalysisResult payloads.

    Instances are cheap (one per session); statistics are shared by the
    process and reset on restart.
    """

    _stats: Dict[str, int] = {
        "hits": 0,
        "misses": 0,
        "writes": 0,
        "errors": 0,
    }

    def __init__(self, db: Session, ttl: timedelta = CacheTTL.GAP_ANALYSIS):
        self.db = db
        self.ttl = ttl

    @classmethod
    def reset_stats(cls) -> None:
        for key in cls._stats:
            cls._stats[key] = 0

    def get(self, property_key: str, country: str = "us") -> Optional[AnalysisResult]:
        """
        Get a cached, unexpired result.

        Returns:
            AnalysisResult with from_cache=True, or None on miss

        Raises:
            CacheError: On database failure or an unreadable payload
        """
        analysis_type = analysis_type_for(country)
        try:
            record = self.db.query(GapAnalysisCacheEntry).filter(
                GapAnalysisCacheEntry.property_key == property_key,
                GapAnalysisCacheEntry.analysis_type == analysis_type,
                GapAnalysisCacheEntry.expires_at > datetime.utcnow(),
            ).first()
        except SQLAlchemyError as e:
            self._stats["errors"] += 1
            raise CacheError(f"Cache read failed for {property_key}: {e}") from e

        if record is None:
            self._stats["misses"] += 1
            return None

        try:
            result = AnalysisResult.from_dict(record.data)
        except (KeyError, TypeError, ValueError) as e:
            self._stats["errors"] += 1
            raise CacheError(f"Corrupt cache entry for {property_key}: {e}") from e

        result.from_cache = True
        self._stats["hits"] += 1
        logger.debug(f"Cache HIT for {analysis_type} ({property_key})")
        return result

    def set(self, property_key: str, country: str, result: AnalysisResult) -> datetime:
        """
        Store a result, replacing any previous entry for the property.

        Returns:
            The entry's expiry time

        Raises:
            CacheError: On database failure
        """
        analysis_type = analysis_type_for(country)
        data = result.to_dict()
        data["fromCache"] = False
        size_bytes = len(json.dumps(data).encode("utf-8"))
        now = datetime.utcnow()
        expires_at = now + self.ttl

        try:
            existing = self.db.query(GapAnalysisCacheEntry).filter(
                GapAnalysisCacheEntry.property_key == property_key,
                GapAnalysisCacheEntry.analysis_type == analysis_type,
            ).first()

            if existing:
                existing.user_domain = result.user_domain
                existing.data = data
                existing.size_bytes = size_bytes
                existing.fetched_at = now
                existing.expires_at = expires_at
            else:
                self.db.add(GapAnalysisCacheEntry(
                    property_key=property_key,
                    analysis_type=analysis_type,
                    user_domain=result.user_domain,
                    data=data,
                    size_bytes=size_bytes,
                    fetched_at=now,
                    expires_at=expires_at,
                ))

            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            self._stats["errors"] += 1
            raise CacheError(f"Cache write failed for {property_key}: {e}") from e

        self._stats["writes"] += 1
        logger.debug(f"Cached {analysis_type} for {property_key} ({size_bytes} bytes) until {expires_at}")
        return expires_at

    def invalidate(self, property_key: str, country: Optional[str] = None) -> int:
        """
        Remove cached entries for a property (all countries unless one is given).
        """
        try:
            query = self.db.query(GapAnalysisCacheEntry).filter(
                GapAnalysisCacheEntry.property_key == property_key,
            )
            if country:
                query = query.filter(GapAnalysisCacheEntry.analysis_type == analysis_type_for(country))
            count = query.delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            self._stats["errors"] += 1
            raise CacheError(f"Invalidation failed for {property_key}: {e}") from e

        logger.info(f"Invalidated {count} cache entries for {property_key}")
        return count

    def purge_expired(self) -> int:
        """Delete expired entries. Returns the number removed."""
        try:
            count = self.db.query(GapAnalysisCacheEntry).filter(
                GapAnalysisCacheEntry.expires_at <= datetime.utcnow(),
            ).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            self._stats["errors"] += 1
            raise CacheError(f"Purge of expired entries failed: {e}") from e

        logger.info(f"Cleaned up {count} expired cache entries")
        return count

    def get_stats(self) -> Dict:
        """Get cache statistics."""
        total = self._stats["hits"] + self._stats["misses"]
        hit_rate = (self._stats["hits"] / total * 100) if total > 0 else 0

        return {
            "enabled": True,
            "backend": self.db.get_bind().dialect.name,
            "hits": self._stats["hits"],
            "misses": self._stats["misses"],
            "writes": self._stats["writes"],
            "errors": self._stats["errors"],
            "hit_rate_percent": round(hit_rate, 2),
        }

    def health_check(self) -> Dict:
        """
        Simple health check.

        Just verifies we can query the table.
        """
        backend = self.db.get_bind().dialect.name
        try:
            count = self.db.query(GapAnalysisCacheEntry).filter(
                GapAnalysisCacheEntry.expires_at > datetime.utcnow(),
            ).count()

            return {
                "healthy": True,
                "status": "connected",
                "cached_entries": count,
                "backend": backend,
            }

        except SQLAlchemyError as e:
            return {
                "healthy": False,
                "status": "error",
                "error": str(e),
                "backend": backend,
            }


def get_gap_cache(db: Session) -> Optional[GapAnalysisCache]:
    """
    Get a GapAnalysisCache bound to the session, or None when caching is
    disabled (CACHE_ENABLED=false).
    """
    config = get_cache_config()
    if not config.enabled:
        return None
    return GapAnalysisCache(db, ttl=config.gap_analysis_ttl)
