"""
SQLAlchemy Models for the Backlink Gap Engine

Only precomputed results are persisted; raw backlink profiles are too
large and too short-lived to be worth storing.
"""

from datetime import datetime

from sqlalchemy import (
    Column, String, Integer, DateTime, Index, UniqueConstraint, JSON,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base

Base = declarative_base()


# JSONB on PostgreSQL, plain JSON everywhere else (SQLite in development)
JSONPayload = JSON().with_variant(JSONB(), "postgresql")


class GapAnalysisCacheEntry(Base):
    """
    Cached gap analysis result for a property.

    One row per (property_key, analysis_type). Rows past expires_at are
    treated as misses and removed by purge_expired().
    """
    __tablename__ = "gap_analysis_cache"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Search Console property identifier as supplied by the caller
    property_key = Column(String(512), nullable=False)
    # e.g. "looms_gap:us"
    analysis_type = Column(String(64), nullable=False)

    user_domain = Column(String(255), nullable=False)

    # AnalysisResult.to_dict() payload
    data = Column(JSONPayload, nullable=False)
    size_bytes = Column(Integer)

    fetched_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False)

    __table_args__ = (
        UniqueConstraint("property_key", "analysis_type", name="uq_gap_cache_property_type"),
        Index("idx_gap_cache_expires_at", "expires_at"),
        Index("idx_gap_cache_user_domain", "user_domain"),
    )
