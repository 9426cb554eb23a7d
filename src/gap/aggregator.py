"""
Parallel Profile Aggregation

Fetches the target's and every competitor's referring domains concurrently:
- One fetch per site, bounded by a semaphore
- Each fetch individually time-boxed
- Every fetch settles before any decision is made (no short-circuit)

A failed competitor degrades to an empty profile. A failed target fetch is
fatal, because gap exclusion depends on the target's own profile.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Set, Tuple, TYPE_CHECKING

from .errors import ProviderError, TargetProfileError
from .models import ProgressEvent, ProgressStage, ReferringDomain, emit_progress

if TYPE_CHECKING:
    from src.collector.client import AhrefsClient

logger = logging.getLogger(__name__)


DEFAULT_FETCH_LIMIT = 5000
DEFAULT_FETCH_TIMEOUT = 60.0
DEFAULT_MAX_CONCURRENCY = 10


# ============================================================================
# DATA MODELS
# ============================================================================

@dataclass
class CompetitorProfile:
    """A competitor's backlink profile as a set (intersection) and list (metadata)."""
    domain: str
    records: List[ReferringDomain] = field(default_factory=list)
    error: Optional[str] = None
    referring_domains: Set[str] = field(init=False)

    def __post_init__(self):
        self.referring_domains = {record.domain for record in self.records}

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass
class AggregatedProfiles:
    """Everything the intersection engine needs, assembled after all fetches settle."""
    target: str
    target_referring_domains: Set[str]
    competitor_profiles: List[CompetitorProfile]

    @property
    def failed_competitors(self) -> List[str]:
        return [p.domain for p in self.competitor_profiles if p.failed]

    @property
    def analyzed_count(self) -> int:
        return sum(1 for p in self.competitor_profiles if not p.failed)


# ============================================================================
# FETCHING
# ============================================================================

async def fetch_profile(
    provider: "AhrefsClient",
    domain: str,
    limit: int = DEFAULT_FETCH_LIMIT,
    timeout: float = DEFAULT_FETCH_TIMEOUT,
) -> List[ReferringDomain]:
    """
    Fetch one referring-domain profile with a hard timeout.

    Raises:
        ProviderError: On timeout or any provider failure
    """
    try:
        return list(await asyncio.wait_for(
            provider.get_referring_domains(domain, limit=limit),
            timeout=timeout,
        ))
    except asyncio.TimeoutError as e:
        raise ProviderError(f"Timed out after {timeout}s fetching {domain}", domain) from e
    except ProviderError:
        raise
    except Exception as e:
        raise ProviderError(f"Failed to fetch referring domains for {domain}: {e}", domain) from e


async def _settle(
    index: int,
    provider: "AhrefsClient",
    domain: str,
    limit: int,
    timeout: float,
    semaphore: asyncio.Semaphore,
) -> Tuple[int, List[ReferringDomain], Optional[ProviderError]]:
    """Run one fetch and fold its outcome into a value instead of an exception."""
    async with semaphore:
        try:
            records = await fetch_profile(provider, domain, limit=limit, timeout=timeout)
            return index, records, None
        except ProviderError as e:
            return index, [], e


async def aggregate_profiles(
    provider: "AhrefsClient",
    target: str,
    competitors: Sequence[str],
    limit: int = DEFAULT_FETCH_LIMIT,
    timeout: float = DEFAULT_FETCH_TIMEOUT,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    progress: Optional[asyncio.Queue] = None,
) -> AggregatedProfiles:
    """
    Fetch the target and all competitor profiles concurrently.

    Args:
        provider: Object exposing get_referring_domains()
        target: Normalized target domain
        competitors: Normalized competitor domains, in resolution order
        limit: Per-fetch cap on referring domains
        timeout: Per-fetch timeout in seconds
        max_concurrency: Max fetches in flight at once
        progress: Optional queue receiving a ProgressEvent per settled fetch

    Returns:
        AggregatedProfiles with one CompetitorProfile per competitor

    Raises:
        TargetProfileError: If the target's own profile could not be fetched
    """
    domains = [target, *competitors]
    total = len(domains)
    semaphore = asyncio.Semaphore(max(1, max_concurrency))

    logger.info(f"Fetching backlink profiles for {target} and {len(competitors)} competitors")

    tasks = [
        asyncio.ensure_future(_settle(i, provider, domain, limit, timeout, semaphore))
        for i, domain in enumerate(domains)
    ]

    settled: List[Optional[Tuple[List[ReferringDomain], Optional[ProviderError]]]] = [None] * total
    try:
        for completed, next_done in enumerate(asyncio.as_completed(tasks), start=1):
            index, records, error = await next_done
            settled[index] = (records, error)

            domain = domains[index]
            if error:
                logger.warning(f"Profile fetch failed for {domain}: {error}")
                message = f"Failed to fetch {domain}"
            else:
                logger.info(f"  - {domain}: {len(records)} referring domains")
                message = f"Fetched {len(records)} referring domains for {domain}"
            emit_progress(progress, ProgressEvent(
                stage=ProgressStage.FETCHING,
                message=message,
                completed=completed,
                total=total,
            ))
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()

    target_records, target_error = settled[0]
    if target_error is not None:
        raise TargetProfileError(
            f"Provider unreachable for target {target}: {target_error}",
            target,
        ) from target_error

    profiles = []
    for domain, (records, error) in zip(competitors, settled[1:]):
        profiles.append(CompetitorProfile(
            domain=domain,
            records=records,
            error=str(error) if error else None,
        ))

    aggregated = AggregatedProfiles(
        target=target,
        target_referring_domains={record.domain for record in target_records},
        competitor_profiles=profiles,
    )

    logger.info(
        f"Aggregated {aggregated.analyzed_count}/{len(competitors)} competitor profiles; "
        f"target has {len(aggregated.target_referring_domains)} referring domains"
    )
    return aggregated
