"""
Gap Analysis Orchestrator

Sequences the backlink gap pipeline and wraps it in a per-property cache:

    1. Normalize the target (and any manual competitors)
    2. Resolve competitors (manual list or discovery)
    3. Fetch all backlink profiles concurrently
    4. Intersect, score and classify

The cache is bypassed for manual-competitor runs (the competitor set is
caller-chosen, so the result is session-specific) and on explicit refresh.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, TYPE_CHECKING

from .aggregator import aggregate_profiles
from .competitors import build_manual_competitors, resolve_competitors
from .domains import normalize_domain
from .errors import CacheError, InvalidDomainError, NoCompetitorsError, TargetProfileError
from .intersect import find_gap_domains
from .models import (
    AnalysisResult,
    Competitor,
    Coverage,
    FailureReason,
    GapAnalysisOutcome,
    ProgressEvent,
    ProgressStage,
    emit_progress,
)
from src.scoring.resonance import RELEVANCE_NORMALIZER, score_gap_domains
from src.scoring.starvation import (
    StarvationThresholds,
    classify_from_count,
    count_high_authority_gaps,
    count_medium_authority_gaps,
)

if TYPE_CHECKING:
    from src.cache.gap_cache import GapAnalysisCache
    from src.collector.client import AhrefsClient

logger = logging.getLogger(__name__)

NO_COMPETITORS_MESSAGE = "No competitors found. Please enter manual competitors."


@dataclass
class GapAnalysisConfig:
    """Tunable knobs for a gap analysis."""
    country: str = "us"
    discovery_limit: int = 10

    # Aggregation
    fetch_limit: int = 5000
    fetch_timeout: float = 60.0
    max_concurrency: int = 10

    # Scoring
    min_competitors: int = 2
    relevance_normalizer: float = RELEVANCE_NORMALIZER
    thresholds: StarvationThresholds = field(default_factory=StarvationThresholds)

    @classmethod
    def from_settings(cls, settings) -> "GapAnalysisConfig":
        return cls(
            country=settings.DEFAULT_COUNTRY,
            discovery_limit=settings.GAP_DISCOVERY_LIMIT,
            fetch_limit=settings.GAP_FETCH_LIMIT,
            fetch_timeout=settings.GAP_FETCH_TIMEOUT,
            max_concurrency=settings.GAP_MAX_CONCURRENCY,
            min_competitors=settings.GAP_MIN_COMPETITORS,
            relevance_normalizer=settings.GAP_RELEVANCE_NORMALIZER,
            thresholds=StarvationThresholds(
                moderate=settings.STARVATION_MODERATE_THRESHOLD,
                severe=settings.STARVATION_SEVERE_THRESHOLD,
            ),
        )


class GapAnalysisOrchestrator:
    """
    Runs Loom's Gap analysis for a site.

    Usage:
        async with AhrefsClient(api_token=token) as client:
            orchestrator = GapAnalysisOrchestrator(client, cache=GapAnalysisCache(db))
            outcome = await orchestrator.analyze("sc-domain:example.com")
            if outcome.success:
                print(outcome.result.thread_starvation)
    """

    def __init__(
        self,
        provider: "AhrefsClient",
        cache: Optional["GapAnalysisCache"] = None,
        config: Optional[GapAnalysisConfig] = None,
    ):
        """
        Args:
            provider: Object exposing get_organic_competitors() and get_referring_domains()
            cache: Optional result cache; None disables caching
            config: Analysis configuration
        """
        self.provider = provider
        self.cache = cache
        self.config = config or GapAnalysisConfig()

    async def analyze(
        self,
        site_url: str,
        country: Optional[str] = None,
        manual_competitors: Optional[Sequence[str]] = None,
        refresh: bool = False,
        progress: Optional[asyncio.Queue] = None,
    ) -> GapAnalysisOutcome:
        """
        Run the full gap analysis.

        Args:
            site_url: Target property (URL, hostname, or sc-domain: identifier)
            country: Country code for competitor discovery
            manual_competitors: Competitor identifiers; skips discovery and cache
            refresh: Ignore any cached result and recompute
            progress: Optional queue receiving ProgressEvents

        Returns:
            GapAnalysisOutcome with either a result or a failure reason
        """
        start = time.monotonic()
        country = (country or self.config.country).lower()

        logger.info(f"LOOM'S GAP ANALYSIS initiated for {site_url}")

        # Input errors surface before any network call
        try:
            user_domain = normalize_domain(site_url)
            manual = (
                build_manual_competitors(user_domain, manual_competitors)
                if manual_competitors else None
            )
        except InvalidDomainError as e:
            logger.warning(f"Rejected gap analysis input: {e}")
            return self._fail(FailureReason.INVALID_DOMAIN, str(e), None, start, progress)

        use_cache = self.cache is not None and manual is None

        if use_cache and not refresh:
            cached = self._read_cache(site_url, country)
            if cached is not None:
                logger.info(f"Serving cached gap analysis for {site_url}")
                emit_progress(progress, ProgressEvent(ProgressStage.COMPLETE, "Loaded cached analysis"))
                return GapAnalysisOutcome.ok(cached)

        try:
            result = await self._run(user_domain, country, manual, start, progress)
        except NoCompetitorsError as e:
            logger.warning(f"No competitors for {user_domain}: {e}")
            return self._fail(FailureReason.NO_COMPETITORS, NO_COMPETITORS_MESSAGE, user_domain, start, progress)
        except TargetProfileError as e:
            logger.error(f"Gap analysis aborted for {user_domain}: {e}")
            return self._fail(FailureReason.TARGET_UNREACHABLE, str(e), user_domain, start, progress)

        # Partial runs are served but not stored
        if use_cache and result.coverage.is_complete:
            self._write_cache(site_url, country, result)
        elif use_cache:
            logger.warning(
                f"Not caching {user_domain}: {result.coverage.analyzed}/"
                f"{result.coverage.requested} competitor profiles analyzed"
            )

        emit_progress(progress, ProgressEvent(
            ProgressStage.COMPLETE,
            f"Found {result.total_gaps} gap domains",
            completed=result.total_gaps,
            total=result.total_gaps,
        ))
        return GapAnalysisOutcome.ok(result)

    async def _run(
        self,
        user_domain: str,
        country: str,
        manual: Optional[List[Competitor]],
        start: float,
        progress: Optional[asyncio.Queue],
    ) -> AnalysisResult:
        config = self.config

        # Step 1: Competitors
        logger.info("[Step 1/4] Resolving competitors...")
        emit_progress(progress, ProgressEvent(ProgressStage.RESOLVING, "Resolving competitors"))
        if manual is not None:
            competitors = manual
        else:
            competitors = await resolve_competitors(
                self.provider,
                user_domain,
                country=country,
                limit=config.discovery_limit,
            )

        if not competitors:
            raise NoCompetitorsError(f"No competitors resolved for {user_domain}")

        # Step 2: Backlink profiles
        logger.info(f"[Step 2/4] Fetching backlink profiles for {len(competitors)} competitors...")
        aggregated = await aggregate_profiles(
            self.provider,
            user_domain,
            [c.domain for c in competitors],
            limit=config.fetch_limit,
            timeout=config.fetch_timeout,
            max_concurrency=config.max_concurrency,
            progress=progress,
        )

        # Step 3: Intersection
        logger.info("[Step 3/4] Computing gap domains...")
        emit_progress(progress, ProgressEvent(ProgressStage.INTERSECTING, "Computing gap domains"))
        gap_domains = find_gap_domains(
            aggregated.target_referring_domains,
            aggregated.competitor_profiles,
            min_competitors=config.min_competitors,
        )

        # Step 4: Resonance and starvation
        logger.info("[Step 4/4] Scoring Thread Resonance...")
        emit_progress(progress, ProgressEvent(ProgressStage.SCORING, "Scoring Thread Resonance"))
        gap_domains = score_gap_domains(gap_domains, competitors, config.relevance_normalizer)

        high_authority = count_high_authority_gaps(gap_domains)
        starvation = classify_from_count(high_authority, config.thresholds)

        result = AnalysisResult(
            user_domain=user_domain,
            competitors=competitors,
            gap_domains=gap_domains,
            high_authority_gaps=high_authority,
            medium_authority_gaps=count_medium_authority_gaps(gap_domains),
            thread_starvation=starvation,
            coverage=Coverage(
                requested=len(competitors),
                analyzed=aggregated.analyzed_count,
                failed=aggregated.failed_competitors,
            ),
            target_referring_domains=len(aggregated.target_referring_domains),
            elapsed_seconds=round(time.monotonic() - start, 2),
        )

        logger.info(
            f"LOOM'S GAP ANALYSIS complete for {user_domain}: "
            f"{result.total_gaps} gaps, {high_authority} high authority, "
            f"starvation {starvation.value}, coverage "
            f"{result.coverage.analyzed}/{result.coverage.requested}, "
            f"{result.elapsed_seconds}s"
        )
        return result

    def _read_cache(self, site_url: str, country: str) -> Optional[AnalysisResult]:
        try:
            return self.cache.get(site_url, country)
        except CacheError as e:
            logger.warning(f"Cache unavailable, running fresh analysis: {e}")
            return None

    def _write_cache(self, site_url: str, country: str, result: AnalysisResult) -> None:
        try:
            self.cache.set(site_url, country, result)
        except CacheError as e:
            logger.warning(f"Could not cache gap analysis for {site_url}: {e}")

    @staticmethod
    def _fail(
        reason: FailureReason,
        message: Optional[str],
        user_domain: Optional[str],
        start: float,
        progress: Optional[asyncio.Queue],
    ) -> GapAnalysisOutcome:
        outcome = GapAnalysisOutcome.failed(
            reason,
            message=message,
            user_domain=user_domain,
            elapsed_seconds=round(time.monotonic() - start, 2),
        )
        emit_progress(progress, ProgressEvent(ProgressStage.FAILED, outcome.message))
        return outcome
