"""
Tests for the Ahrefs API Client

Uses httpx.MockTransport so no request leaves the process.
"""

import httpx
import pytest

from src.collector.client import AhrefsClient, AhrefsError, RetryConfig
from src.utils.config import Settings


FAST_RETRY = RetryConfig(max_retries=2, initial_delay=0, max_delay=0)


def _client(handler, retry_config=FAST_RETRY) -> AhrefsClient:
    return AhrefsClient(
        api_token="test-token",
        retry_config=retry_config,
        transport=httpx.MockTransport(handler),
    )


class TestReferringDomains:
    """Tests for get_referring_domains."""

    @pytest.mark.asyncio
    async def test_parses_records(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(200, json={"refdomains": [
                {"domain": "Blog.Example.org", "domain_rating": 72.5, "backlinks": 14,
                 "refpages": 3, "first_seen": "2023-02-01T00:00:00Z", "last_visited": "2024-05-01T00:00:00Z"},
                {"domain": "", "domain_rating": 90},
                {"domain": "odd.net", "domain_rating": 140, "backlinks": None},
            ]})

        async with _client(handler) as client:
            records = await client.get_referring_domains("example.com", limit=250)

        assert seen["path"] == "/v3/site-explorer/referring-domains"
        assert seen["params"]["target"] == "example.com"
        assert seen["params"]["limit"] == "250"
        assert seen["params"]["order_by"] == "domain_rating:desc"
        assert seen["auth"] == "Bearer test-token"

        assert [r.domain for r in records] == ["blog.example.org", "odd.net"]
        assert records[0].domain_rating == 72.5
        assert records[0].ref_pages == 3
        assert records[0].first_seen == "2023-02-01T00:00:00Z"
        assert records[1].domain_rating == 100.0
        assert records[1].backlinks == 0

    @pytest.mark.asyncio
    async def test_empty_profile(self):
        async with _client(lambda request: httpx.Response(200, json={"refdomains": []})) as client:
            assert await client.get_referring_domains("example.com") == []


class TestOrganicCompetitors:
    """Tests for get_organic_competitors."""

    @pytest.mark.asyncio
    async def test_parses_competitors(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={"competitors": [
                {"competitor_domain": "rival.com", "common_keywords": 420, "domain_rating": 51,
                 "organic_keywords": 9000, "organic_traffic": 12000},
                {"domain": "other.com", "common_keywords": 90},
                {"common_keywords": 10},
            ]})

        async with _client(handler) as client:
            competitors = await client.get_organic_competitors("example.com", country="de", limit=10)

        assert seen["params"]["country"] == "de"
        assert seen["params"]["order_by"] == "common_keywords:desc"
        assert [c.domain for c in competitors] == ["rival.com", "other.com"]
        assert competitors[0].common_keywords == 420
        assert competitors[0].domain_rating == 51
        assert not competitors[0].manual


class TestErrorHandling:
    """Retries and error mapping."""

    @pytest.mark.asyncio
    async def test_retries_server_errors(self):
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            if len(attempts) < 3:
                return httpx.Response(503, json={"error": "busy"})
            return httpx.Response(200, json={"refdomains": [{"domain": "a.com", "domain_rating": 10}]})

        async with _client(handler) as client:
            records = await client.get_referring_domains("example.com")

        assert len(attempts) == 3
        assert [r.domain for r in records] == ["a.com"]

    @pytest.mark.asyncio
    async def test_client_errors_not_retried(self):
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            return httpx.Response(401, json={"error": "invalid token"})

        async with _client(handler) as client:
            with pytest.raises(AhrefsError) as exc_info:
                await client.get_referring_domains("example.com")

        assert exc_info.value.status_code == 401
        assert len(attempts) == 1

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self):
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            return httpx.Response(500)

        async with _client(handler) as client:
            with pytest.raises(AhrefsError):
                await client.get_referring_domains("example.com")

        assert len(attempts) == FAST_RETRY.max_retries + 1

    @pytest.mark.asyncio
    async def test_transport_errors_retried(self):
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            if len(attempts) == 1:
                raise httpx.ConnectError("connection reset", request=request)
            return httpx.Response(200, json={"refdomains": []})

        async with _client(handler) as client:
            assert await client.get_referring_domains("example.com") == []
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_error_body_raises(self):
        async with _client(lambda request: httpx.Response(200, json={"error": "quota"})) as client:
            with pytest.raises(AhrefsError, match="quota"):
                await client.get_organic_competitors("example.com")

    @pytest.mark.asyncio
    async def test_closed_client(self):
        client = _client(lambda request: httpx.Response(200, json={}))
        await client.close()
        with pytest.raises(AhrefsError, match="closed"):
            await client.get_referring_domains("example.com")


class TestConstruction:
    """Tests for client construction."""

    def test_missing_token(self):
        with pytest.raises(AhrefsError):
            AhrefsClient(api_token="")

    @pytest.mark.asyncio
    async def test_from_settings(self):
        settings = Settings(_env_file=None, AHREFS_API_TOKEN="abc", AHREFS_BASE_URL="https://proxy.local/v3")
        client = AhrefsClient.from_settings(settings)
        try:
            assert str(client._client.base_url).startswith("https://proxy.local/v3")
        finally:
            await client.close()
