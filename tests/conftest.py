"""
Pytest Configuration and Shared Fixtures

Provides a scripted backlink provider, an in-memory cache database and
the canonical gap scenarios used across test modules.
"""

import asyncio
import dataclasses
from typing import Dict, Iterable, List, Optional, Union

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from src.cache.gap_cache import GapAnalysisCache
from src.collector.client import AhrefsError
from src.database import init_db
from src.gap.models import Competitor, GapDomain, ReferringDomain


# ============================================================================
# Builders
# ============================================================================

def make_refs(domains: Union[Iterable[str], Dict[str, float]], dr: float = 40.0) -> List[ReferringDomain]:
    """Referring-domain records from a list of domains or a {domain: rating} map."""
    if isinstance(domains, dict):
        return [ReferringDomain(domain=d, domain_rating=rating, backlinks=10) for d, rating in domains.items()]
    return [ReferringDomain(domain=d, domain_rating=dr, backlinks=10) for d in domains]


def make_gap(
    domain: str = "gap.com",
    domain_rating: float = 60.0,
    competitors_linked: Optional[List[str]] = None,
    thread_resonance: int = 0,
) -> GapDomain:
    return GapDomain(
        domain=domain,
        domain_rating=domain_rating,
        backlinks=5,
        ref_pages=3,
        first_seen="2024-01-01T00:00:00Z",
        last_visited="2024-06-01T00:00:00Z",
        competitors_linked=competitors_linked or ["c1.com", "c2.com"],
        thread_resonance=thread_resonance,
    )


# ============================================================================
# Fake Provider
# ============================================================================

class FakeProvider:
    """
    Scripted stand-in for AhrefsClient.

    Args:
        profiles: Referring domains per site
        competitors: Discovery response
        failures: Sites whose profile fetch raises
        delays: Seconds to sleep before answering, per site
        discovery_error: Raised by get_organic_competitors when set
    """

    def __init__(
        self,
        profiles: Optional[Dict[str, List[ReferringDomain]]] = None,
        competitors: Optional[List[Competitor]] = None,
        failures: Iterable[str] = (),
        delays: Optional[Dict[str, float]] = None,
        discovery_error: Optional[Exception] = None,
    ):
        self.profiles = profiles or {}
        self.competitors = competitors or []
        self.failures = set(failures)
        self.delays = delays or {}
        self.discovery_error = discovery_error

        self.discovery_calls = []
        self.referring_calls = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    async def get_organic_competitors(self, domain: str, country: str = "us", limit: int = 10):
        self.discovery_calls.append((domain, country, limit))
        if self.discovery_error:
            raise self.discovery_error
        return [dataclasses.replace(c) for c in self.competitors[:limit]]

    async def get_referring_domains(self, domain: str, limit: int = 5000):
        self.referring_calls.append(domain)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(domain, 0))
            if domain in self.failures:
                raise AhrefsError(f"API request failed: 500 ({domain})", status_code=500)
            return list(self.profiles.get(domain, []))[:limit]
        finally:
            self.in_flight -= 1

    async def close(self):
        self.closed = True


# ============================================================================
# Scenario Fixtures
# ============================================================================

@pytest.fixture
def scenario_a_provider() -> FakeProvider:
    """
    Target example.com is linked from a.com.
    c1.com: a.com, b.com, c.com; c2.com: b.com, c.com, d.com.
    """
    return FakeProvider(
        profiles={
            "example.com": make_refs(["a.com"]),
            "c1.com": make_refs({"a.com": 70, "b.com": 80, "c.com": 55}),
            "c2.com": make_refs({"b.com": 80, "c.com": 55, "d.com": 90}),
        },
        competitors=[
            Competitor(domain="c1.com", common_keywords=120, domain_rating=45),
            Competitor(domain="c2.com", common_keywords=80, domain_rating=38),
        ],
    )


@pytest.fixture
def three_competitor_provider() -> FakeProvider:
    """Three discovered competitors; c3.com's profile fetch fails."""
    return FakeProvider(
        profiles={
            "example.com": make_refs(["a.com"]),
            "c1.com": make_refs({"b.com": 60, "c.com": 35}),
            "c2.com": make_refs({"b.com": 60, "c.com": 35}),
            "c3.com": make_refs({"b.com": 60}),
        },
        competitors=[
            Competitor(domain="c1.com", common_keywords=100),
            Competitor(domain="c2.com", common_keywords=100),
            Competitor(domain="c3.com", common_keywords=100),
        ],
        failures={"c3.com"},
    )


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def db_engine():
    """In-memory SQLite shared across threads (TestClient runs in a worker)."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    session = sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def gap_cache(db_session) -> GapAnalysisCache:
    return GapAnalysisCache(db_session)


@pytest.fixture(autouse=True)
def reset_cache_stats():
    GapAnalysisCache.reset_stats()
    yield
    GapAnalysisCache.reset_stats()


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
