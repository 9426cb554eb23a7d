"""
Ahrefs API Client

Async HTTP client with:
- Connection pooling
- Automatic retry with exponential backoff
- Graceful error handling
- Request/response logging

Serves as both external collaborators of the gap analysis:
- Competitor discovery (site-explorer/organic-competitors)
- Backlink profile provider (site-explorer/referring-domains)
"""

import asyncio
import httpx
import logging
from datetime import date
from typing import Any, Dict, List, Optional
from dataclasses import dataclass

from src.gap.models import Competitor, ReferringDomain, clamp_rating

logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""
    max_retries: int = 3
    initial_delay: float = 1.0
    max_delay: float = 10.0
    exponential_base: float = 2.0
    retryable_status_codes: tuple = (429, 500, 502, 503, 504)


class AhrefsError(Exception):
    """Custom exception for Ahrefs API errors."""
    def __init__(self, message: str, status_code: int = None, response: dict = None):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


def _items(payload: Dict[str, Any], *keys: str) -> List[Dict[str, Any]]:
    """Return the first list found under any of the given keys."""
    for key in keys:
        items = payload.get(key)
        if isinstance(items, list):
            return [item for item in items if isinstance(item, dict)]
    return []


class AhrefsClient:
    """
    Async client for the Ahrefs API v3.

    Usage:
        client = AhrefsClient(api_token="your_token")

        refdomains = await client.get_referring_domains("example.com", limit=5000)

        await client.close()
    """

    BASE_URL = "https://api.ahrefs.com/v3"

    def __init__(
        self,
        api_token: str,
        base_url: Optional[str] = None,
        retry_config: Optional[RetryConfig] = None,
        max_connections: int = 20,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Ahrefs client.

        Args:
            api_token: Ahrefs API v3 token
            base_url: Override the API base URL
            retry_config: Retry configuration (optional)
            max_connections: Maximum concurrent connections
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests)
        """
        if not api_token:
            raise AhrefsError("AHREFS_API_TOKEN is not set")

        self.retry_config = retry_config or RetryConfig()

        self._client = httpx.AsyncClient(
            base_url=base_url or self.BASE_URL,
            headers={
                "Authorization": f"Bearer {api_token}",
                "Accept": "application/json",
                "User-Agent": "backlink-gap-engine/0.1",
            },
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max(1, max_connections // 2),
            ),
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

        self._closed = False

    @classmethod
    def from_settings(cls, settings, **kwargs) -> "AhrefsClient":
        """Build a client from application Settings."""
        return cls(
            api_token=settings.AHREFS_API_TOKEN,
            base_url=settings.AHREFS_BASE_URL,
            timeout=float(settings.API_TIMEOUT),
            **kwargs,
        )

    async def get(
        self,
        endpoint: str,
        params: Dict[str, Any],
        retry: bool = True
    ) -> Dict[str, Any]:
        """
        Make GET request to Ahrefs API.

        Args:
            endpoint: API endpoint path (e.g., "site-explorer/referring-domains")
            params: Query parameters; None values are dropped
            retry: Whether to retry on failure

        Returns:
            API response as dictionary

        Raises:
            AhrefsError: On API error
        """
        if self._closed:
            raise AhrefsError("Client is closed")

        url = f"/{endpoint}"
        query = {k: str(v) for k, v in params.items() if v is not None}

        if retry:
            return await self._request_with_retry(url, query)
        else:
            return await self._make_request(url, query)

    async def _make_request(self, url: str, params: Dict[str, str]) -> Dict[str, Any]:
        """Make a single HTTP request."""
        logger.debug(f"GET {url} target={params.get('target', 'N/A')}")

        response = await self._client.get(url, params=params)

        if response.status_code != 200:
            try:
                body = response.json() if response.content else None
            except ValueError:
                body = {"raw": response.text[:500]}
            raise AhrefsError(
                f"API request failed: {response.status_code}",
                status_code=response.status_code,
                response=body,
            )

        try:
            result = response.json()
        except ValueError as e:
            raise AhrefsError(f"Invalid JSON from {url}: {e}", status_code=response.status_code)

        if not isinstance(result, dict):
            raise AhrefsError(f"Unexpected response shape from {url}", status_code=response.status_code)

        if result.get("error"):
            raise AhrefsError(f"API error: {result['error']}", response=result)

        return result

    async def _request_with_retry(self, url: str, params: Dict[str, str]) -> Dict[str, Any]:
        """Make request with automatic retry on failure."""
        last_exception = None
        delay = self.retry_config.initial_delay

        for attempt in range(self.retry_config.max_retries + 1):
            try:
                return await self._make_request(url, params)

            except AhrefsError as e:
                last_exception = e

                # Don't retry client errors (4xx except 429)
                if e.status_code and 400 <= e.status_code < 500 and e.status_code != 429:
                    raise

                if attempt < self.retry_config.max_retries:
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{self.retry_config.max_retries + 1}): {e}. "
                        f"Retrying in {delay}s..."
                    )
                    await asyncio.sleep(delay)
                    delay = min(
                        delay * self.retry_config.exponential_base,
                        self.retry_config.max_delay
                    )

            except httpx.TimeoutException as e:
                last_exception = AhrefsError(f"Request timed out: {e}")

                if attempt < self.retry_config.max_retries:
                    logger.warning(
                        f"Timeout (attempt {attempt + 1}). Retrying in {delay}s..."
                    )
                    await asyncio.sleep(delay)
                    delay = min(
                        delay * self.retry_config.exponential_base,
                        self.retry_config.max_delay
                    )

            except httpx.HTTPError as e:
                last_exception = AhrefsError(f"HTTP error: {e}")

                if attempt < self.retry_config.max_retries:
                    logger.warning(
                        f"HTTP error (attempt {attempt + 1}). Retrying in {delay}s..."
                    )
                    await asyncio.sleep(delay)
                    delay = min(
                        delay * self.retry_config.exponential_base,
                        self.retry_config.max_delay
                    )

        raise last_exception

    async def close(self):
        """Close the HTTP client."""
        if not self._closed:
            await self._client.aclose()
            self._closed = True

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # ========================================================================
    # GAP ANALYSIS COLLABORATORS
    # ========================================================================

    async def get_organic_competitors(
        self,
        domain: str,
        country: str = "us",
        limit: int = 10,
    ) -> List[Competitor]:
        """
        Discover the target's top organic competitors.

        Ordered by keywords shared with the target, which is what the
        resonance scorer uses as its topical-closeness signal.

        Raises:
            AhrefsError: On API failure
        """
        result = await self.get(
            "site-explorer/organic-competitors",
            {
                "target": domain,
                "mode": "subdomains",
                "country": country,
                "date": date.today().isoformat(),
                "select": "competitor_domain,domain,common_keywords,intersections,common_traffic,"
                          "domain_rating,organic_keywords,organic_traffic",
                "limit": limit,
                "order_by": "common_keywords:desc",
            },
        )

        competitors = []
        for item in _items(result, "competitors"):
            competitor_domain = item.get("competitor_domain") or item.get("domain")
            if not competitor_domain:
                continue
            competitors.append(Competitor(
                domain=competitor_domain,
                common_keywords=int(item.get("common_keywords") or 0),
                domain_rating=clamp_rating(item.get("domain_rating")),
                organic_keywords=int(item.get("organic_keywords") or 0),
                organic_traffic=int(item.get("organic_traffic") or 0),
                intersections=int(item.get("intersections") or 0),
                common_traffic=int(item.get("common_traffic") or 0),
            ))

        logger.info(f"Found {len(competitors)} organic competitors for {domain}")
        return competitors

    async def get_referring_domains(
        self,
        domain: str,
        limit: int = 5000,
    ) -> List[ReferringDomain]:
        """
        Fetch the referring domains of a site, best domains first.

        Raises:
            AhrefsError: On API failure
        """
        result = await self.get(
            "site-explorer/referring-domains",
            {
                "target": domain,
                "mode": "subdomains",
                "select": "domain,domain_rating,backlinks,refpages,first_seen,last_visited",
                "limit": limit,
                "order_by": "domain_rating:desc",
            },
        )

        records = []
        for item in _items(result, "refdomains", "domains"):
            ref_domain = (item.get("domain") or "").strip().lower()
            if not ref_domain:
                continue
            records.append(ReferringDomain(
                domain=ref_domain,
                domain_rating=clamp_rating(item.get("domain_rating")),
                backlinks=int(item.get("backlinks") or 0),
                ref_pages=int(item.get("refpages") or 0),
                first_seen=item.get("first_seen"),
                last_visited=item.get("last_visited"),
            ))

        logger.info(f"Found {len(records)} referring domains for {domain}")
        return records


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

def create_client(settings=None) -> AhrefsClient:
    """Create an Ahrefs client from settings (defaults to environment)."""
    if settings is None:
        from src.utils.config import get_settings
        settings = get_settings()
    return AhrefsClient.from_settings(settings)
