"""
Tests for Parallel Profile Aggregation and Competitor Resolution
"""

import asyncio

import pytest

from conftest import FakeProvider, make_refs
from src.gap.aggregator import aggregate_profiles, fetch_profile
from src.gap.competitors import (
    build_manual_competitors,
    clean_discovered_competitors,
    resolve_competitors,
)
from src.gap.errors import InvalidDomainError, ProviderError, TargetProfileError
from src.gap.models import Competitor, ProgressStage


class TestAggregateProfiles:
    """Tests for aggregate_profiles."""

    @pytest.mark.asyncio
    async def test_all_profiles_collected(self, scenario_a_provider):
        aggregated = await aggregate_profiles(scenario_a_provider, "example.com", ["c1.com", "c2.com"])

        assert aggregated.target_referring_domains == {"a.com"}
        assert [p.domain for p in aggregated.competitor_profiles] == ["c1.com", "c2.com"]
        assert aggregated.competitor_profiles[0].referring_domains == {"a.com", "b.com", "c.com"}
        assert aggregated.analyzed_count == 2
        assert aggregated.failed_competitors == []

    @pytest.mark.asyncio
    async def test_failed_competitor_degrades_to_empty(self, three_competitor_provider):
        """One of three competitor fetches fails; the other two are kept."""
        aggregated = await aggregate_profiles(
            three_competitor_provider, "example.com", ["c1.com", "c2.com", "c3.com"],
        )

        failed = aggregated.competitor_profiles[2]
        assert failed.failed
        assert failed.records == []
        assert failed.referring_domains == set()
        assert aggregated.failed_competitors == ["c3.com"]
        assert aggregated.analyzed_count == 2

    @pytest.mark.asyncio
    async def test_timeout_isolated_to_one_competitor(self):
        provider = FakeProvider(
            profiles={
                "example.com": make_refs(["a.com"]),
                "fast.com": make_refs(["b.com"]),
                "slow.com": make_refs(["b.com"]),
            },
            delays={"slow.com": 2.0},
        )

        aggregated = await aggregate_profiles(
            provider, "example.com", ["fast.com", "slow.com"], timeout=0.1,
        )

        assert aggregated.failed_competitors == ["slow.com"]
        assert "Timed out" in aggregated.competitor_profiles[1].error
        assert aggregated.competitor_profiles[0].referring_domains == {"b.com"}

    @pytest.mark.asyncio
    async def test_target_failure_is_fatal_after_all_settle(self):
        """A failed target aborts, but only once every competitor fetch has run."""
        provider = FakeProvider(
            profiles={"c1.com": make_refs(["b.com"]), "c2.com": make_refs(["b.com"])},
            failures={"example.com"},
            delays={"c2.com": 0.05},
        )

        with pytest.raises(TargetProfileError) as exc_info:
            await aggregate_profiles(provider, "example.com", ["c1.com", "c2.com"])

        assert exc_info.value.domain == "example.com"
        assert "Provider unreachable for target" in str(exc_info.value)
        assert sorted(provider.referring_calls) == ["c1.com", "c2.com", "example.com"]

    @pytest.mark.asyncio
    async def test_concurrency_bounded(self):
        competitors = [f"c{i}.com" for i in range(8)]
        provider = FakeProvider(delays={d: 0.02 for d in ["example.com", *competitors]})

        await aggregate_profiles(provider, "example.com", competitors, max_concurrency=3)

        assert provider.max_in_flight <= 3
        assert len(provider.referring_calls) == 9

    @pytest.mark.asyncio
    async def test_fetches_run_concurrently(self):
        competitors = [f"c{i}.com" for i in range(4)]
        provider = FakeProvider(delays={d: 0.05 for d in ["example.com", *competitors]})

        await aggregate_profiles(provider, "example.com", competitors, max_concurrency=10)

        assert provider.max_in_flight == 5

    @pytest.mark.asyncio
    async def test_fetch_limit_passed_through(self):
        provider = FakeProvider(profiles={
            "example.com": [],
            "c1.com": make_refs([f"r{i}.com" for i in range(10)]),
        })
        aggregated = await aggregate_profiles(provider, "example.com", ["c1.com"], limit=4)
        assert len(aggregated.competitor_profiles[0].records) == 4

    @pytest.mark.asyncio
    async def test_progress_event_per_fetch(self, scenario_a_provider):
        queue = asyncio.Queue()

        await aggregate_profiles(scenario_a_provider, "example.com", ["c1.com", "c2.com"], progress=queue)

        events = []
        while not queue.empty():
            events.append(queue.get_nowait())
        assert [e.stage for e in events] == [ProgressStage.FETCHING] * 3
        assert [e.completed for e in events] == [1, 2, 3]
        assert all(e.total == 3 for e in events)


class TestFetchProfile:
    """Tests for fetch_profile error wrapping."""

    @pytest.mark.asyncio
    async def test_provider_exception_wrapped(self):
        provider = FakeProvider(failures={"c1.com"})
        with pytest.raises(ProviderError) as exc_info:
            await fetch_profile(provider, "c1.com")
        assert exc_info.value.domain == "c1.com"

    @pytest.mark.asyncio
    async def test_timeout_wrapped(self):
        provider = FakeProvider(delays={"c1.com": 1.0})
        with pytest.raises(ProviderError, match="Timed out"):
            await fetch_profile(provider, "c1.com", timeout=0.01)


class TestResolveCompetitors:
    """Tests for competitor resolution."""

    @pytest.mark.asyncio
    async def test_manual_list_skips_discovery(self, scenario_a_provider):
        competitors = await resolve_competitors(
            scenario_a_provider, "example.com", manual_competitors=["https://www.Rival.com/", "other.com"],
        )

        assert [c.domain for c in competitors] == ["rival.com", "other.com"]
        assert all(c.manual and c.common_keywords is None for c in competitors)
        assert scenario_a_provider.discovery_calls == []

    @pytest.mark.asyncio
    async def test_discovery(self, scenario_a_provider):
        competitors = await resolve_competitors(scenario_a_provider, "example.com", country="gb", limit=5)

        assert [c.domain for c in competitors] == ["c1.com", "c2.com"]
        assert scenario_a_provider.discovery_calls == [("example.com", "gb", 5)]

    @pytest.mark.asyncio
    async def test_discovery_failure_returns_empty(self):
        provider = FakeProvider(discovery_error=RuntimeError("quota exceeded"))
        assert await resolve_competitors(provider, "example.com") == []

    def test_manual_drops_target_and_duplicates(self):
        competitors = build_manual_competitors(
            "example.com", ["example.com", "rival.com", "www.rival.com"],
        )
        assert [c.domain for c in competitors] == ["rival.com"]

    def test_manual_invalid_raises(self):
        with pytest.raises(InvalidDomainError):
            build_manual_competitors("example.com", ["rival.com", "sc-set:xyz"])

    def test_discovered_cleaned(self):
        discovered = [
            Competitor(domain="WWW.Rival.com", common_keywords=300),
            Competitor(domain="example.com", common_keywords=900),
            Competitor(domain="not a domain", common_keywords=50),
            Competitor(domain="rival.com", common_keywords=10),
            Competitor(domain="other.com", common_keywords=20),
        ]

        competitors = clean_discovered_competitors("example.com", discovered)

        assert [c.domain for c in competitors] == ["rival.com", "other.com"]
        assert competitors[0].common_keywords == 300
