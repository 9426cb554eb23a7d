"""
Loom's Gap API

Endpoints for competitive backlink gap analysis.

Endpoints:
- Run an analysis (JSON response)
- Run an analysis with live progress (Server-Sent Events)
- Invalidate a property's cached analysis
- Cache statistics
"""

import asyncio
import json
import logging
from datetime import datetime
from typing import Any, AsyncGenerator, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from src.cache.gap_cache import GapAnalysisCache, get_gap_cache
from src.collector.client import AhrefsClient, AhrefsError, create_client
from src.database.session import get_db
from src.gap.errors import CacheError
from src.gap.models import FailureReason, GapAnalysisOutcome
from src.gap.orchestrator import GapAnalysisConfig, GapAnalysisOrchestrator
from src.utils.config import get_settings


logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/gap-analysis", tags=["Loom's Gap"])

# Failures that are the caller's or the provider's fault map to HTTP errors;
# "no competitors" is a normal 200 response with success=false.
FAILURE_STATUS_CODES = {
    FailureReason.INVALID_DOMAIN: 422,
    FailureReason.TARGET_UNREACHABLE: 502,
}


# =============================================================================
# REQUEST / RESPONSE MODELS
# =============================================================================

class GapAnalysisRequest(BaseModel):
    """Request to run a gap analysis."""
    site_url: str = Field(..., description="Site URL, hostname, or sc-domain: property")
    country: str = Field(default="us", min_length=2, max_length=2, description="Discovery country code")
    manual_competitors: List[str] = Field(
        default_factory=list,
        description="Competitor domains; when given, discovery and caching are skipped",
    )
    refresh: bool = Field(default=False, description="Ignore any cached result")


class CacheStatsResponse(BaseModel):
    """Gap cache statistics."""
    enabled: bool
    backend: str
    hits: int = 0
    misses: int = 0
    writes: int = 0
    errors: int = 0
    hit_rate_percent: float = 0.0
    cached_entries: int = 0


class InvalidationResponse(BaseModel):
    """Cache invalidation response."""
    success: bool
    keys_invalidated: int
    duration_ms: float


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_provider() -> AhrefsClient:
    """Backlink data provider; the endpoint closes it when done."""
    try:
        return create_client(get_settings())
    except AhrefsError as e:
        logger.error(f"Ahrefs client unavailable: {e}")
        raise HTTPException(status_code=503, detail=str(e))


def get_analysis_config() -> GapAnalysisConfig:
    return GapAnalysisConfig.from_settings(get_settings())


def get_cache(db: Session = Depends(get_db)) -> Optional[GapAnalysisCache]:
    return get_gap_cache(db)


def _sse(payload: Dict[str, Any]) -> str:
    return f"data: {json.dumps(payload)}\n\n"


def _raise_for_failure(outcome: GapAnalysisOutcome) -> None:
    status_code = FAILURE_STATUS_CODES.get(outcome.failure)
    if status_code is not None:
        raise HTTPException(status_code=status_code, detail=outcome.to_dict())


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post("")
async def run_gap_analysis(
    request: GapAnalysisRequest,
    provider: AhrefsClient = Depends(get_provider),
    cache: Optional[GapAnalysisCache] = Depends(get_cache),
    config: GapAnalysisConfig = Depends(get_analysis_config),
):
    """
    Run Loom's Gap analysis for a site.

    Returns the full result payload. An unresolvable competitor set comes
    back as success=false with error "no_competitors".
    """
    orchestrator = GapAnalysisOrchestrator(provider, cache=cache, config=config)
    try:
        outcome = await orchestrator.analyze(
            request.site_url,
            country=request.country,
            manual_competitors=request.manual_competitors,
            refresh=request.refresh,
        )
    finally:
        await provider.close()

    _raise_for_failure(outcome)
    return outcome.to_dict()


async def progress_stream(
    orchestrator: GapAnalysisOrchestrator,
    request: GapAnalysisRequest,
) -> AsyncGenerator[str, None]:
    """Generate SSE events while the analysis runs, ending with complete or error."""
    queue: asyncio.Queue = asyncio.Queue()
    task = asyncio.ensure_future(orchestrator.analyze(
        request.site_url,
        country=request.country,
        manual_competitors=request.manual_competitors,
        refresh=request.refresh,
        progress=queue,
    ))

    try:
        while True:
            getter = asyncio.ensure_future(queue.get())
            done, _ = await asyncio.wait({getter, task}, return_when=asyncio.FIRST_COMPLETED)
            if getter in done:
                yield _sse(getter.result().to_dict())
                continue
            getter.cancel()
            break

        while not queue.empty():
            yield _sse(queue.get_nowait().to_dict())

        outcome = task.result()
        yield _sse({"type": "complete" if outcome.success else "error", **outcome.to_dict()})
    except Exception as e:
        logger.error(f"Gap analysis stream failed for {request.site_url}: {e}")
        yield _sse({"type": "error", "success": False, "error": "internal_error", "message": str(e)})
    finally:
        if not task.done():
            task.cancel()
        await orchestrator.provider.close()


@router.post("/stream")
async def stream_gap_analysis(
    request: GapAnalysisRequest,
    provider: AhrefsClient = Depends(get_provider),
    cache: Optional[GapAnalysisCache] = Depends(get_cache),
    config: GapAnalysisConfig = Depends(get_analysis_config),
):
    """
    Run Loom's Gap analysis with live progress.

    Streams `data: {...}` events of type "progress", then one final
    "complete" (full result payload) or "error" event.
    """
    orchestrator = GapAnalysisOrchestrator(provider, cache=cache, config=config)
    return StreamingResponse(
        progress_stream(orchestrator, request),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.delete("/cache", response_model=InvalidationResponse)
def invalidate_gap_cache(
    site_url: str = Query(
        ...,
        description=(
            "Property key exactly as it was submitted for analysis. Keys are not "
            "normalized, so 'example.com' and 'https://example.com/' are separate entries"
        ),
    ),
    country: Optional[str] = Query(default=None, description="Only this country's entry"),
    db: Session = Depends(get_db),
):
    """
    Invalidate cached analyses for a property.

    Use this to force the next request to recompute.
    """
    start = datetime.utcnow()

    try:
        count = GapAnalysisCache(db).invalidate(site_url, country)
    except CacheError as e:
        logger.error(f"Failed to invalidate gap cache: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    elapsed = (datetime.utcnow() - start).total_seconds() * 1000

    return InvalidationResponse(
        success=True,
        keys_invalidated=count,
        duration_ms=elapsed,
    )


@router.get("/cache/stats", response_model=CacheStatsResponse)
def get_gap_cache_stats(db: Session = Depends(get_db)):
    """
    Get gap cache statistics.

    Note: Counters are reset on application restart.
    """
    cache = get_gap_cache(db)
    if cache is None:
        return CacheStatsResponse(enabled=False, backend=db.get_bind().dialect.name)

    stats = cache.get_stats()
    health = cache.health_check()
    return CacheStatsResponse(**stats, cached_entries=health.get("cached_entries", 0))
