"""
Loom's Gap API Application

FastAPI app serving the gap analysis router.

Run locally:
    uvicorn api.main:app --reload
"""

import logging
import sys
from datetime import datetime

from fastapi import FastAPI

from api.gap import router as gap_router
from src import __version__
from src.cache.gap_cache import get_gap_cache
from src.database import check_db_connection, get_db_context, init_db
from src.gap.errors import CacheError
from src.utils.config import get_settings

# Configure logging to stdout (Railway treats stderr as errors)
logging.basicConfig(
    level=get_settings().LOG_LEVEL.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stdout,
    force=True,
)
logger = logging.getLogger(__name__)

# Quiet down chatty loggers
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

app = FastAPI(
    title="Loom's Gap Engine",
    description="Competitive backlink gap analysis powered by Ahrefs",
    version=__version__,
)

app.include_router(gap_router)


# ============================================================================
# STARTUP - Initialize Database
# ============================================================================

@app.on_event("startup")
async def startup_event():
    """Create the cache table on startup."""
    logger.info("Initializing database...")
    try:
        init_db()
        if check_db_connection():
            logger.info("Database connection verified")
        else:
            logger.warning("Database connection check failed - continuing without cache")
            return
    except Exception as e:
        # Analyses still run without a cache
        logger.error(f"Database initialization failed: {e}")
        return

    purge_expired_cache_entries()


def purge_expired_cache_entries() -> int:
    """Remove expired gap analyses. Returns the number of rows deleted."""
    with get_db_context() as db:
        cache = get_gap_cache(db)
        if cache is None:
            return 0
        try:
            return cache.purge_expired()
        except CacheError as e:
            logger.warning(f"Expired cache purge failed: {e}")
            return 0


# ============================================================================
# HEALTH
# ============================================================================

@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "Loom's Gap Engine"}


@app.get("/api/health")
async def health():
    """Detailed health check including database status."""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "version": __version__,
        "environment": get_settings().ENVIRONMENT,
        "database": "connected" if check_db_connection() else "disconnected",
    }


# ============================================================================
# RUN SERVER
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
