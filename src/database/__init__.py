"""
Gap Engine Database Layer

Usage:
    from src.database import init_db, get_db, get_db_context, GapAnalysisCacheEntry

    init_db()

    with get_db_context() as db:
        db.query(GapAnalysisCacheEntry).count()
"""

from .models import Base, GapAnalysisCacheEntry
from .session import (
    get_database_url,
    create_db_engine,
    get_engine,
    get_session_factory,
    get_db,
    get_db_context,
    init_db,
    check_db_connection,
)

__all__ = [
    "Base",
    "GapAnalysisCacheEntry",
    "get_database_url",
    "create_db_engine",
    "get_engine",
    "get_session_factory",
    "get_db",
    "get_db_context",
    "init_db",
    "check_db_connection",
]
