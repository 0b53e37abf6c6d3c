"""
Tests for the server-side dispatcher.
"""

import pytest

from graphql_fetcher.cancellation import CancellationToken
from graphql_fetcher.config import ServerFetcherConfig
from graphql_fetcher.exceptions import CancellationError, GraphQLFieldError, HTTPStatusError
from graphql_fetcher.helpers import compute_content_hash
from graphql_fetcher.models import CacheDirectives
from graphql_fetcher.server import ServerFetcher, init_server_fetcher
from graphql_fetcher.tracing import RecordingTracer

from .conftest import ENDPOINT, MUTATION, NOT_FOUND, QUERY, SUCCESS

CACHE = CacheDirectives(cache="force-cache", revalidate=900, tags=("page",))


class TestServerFetcher:
    """Test ServerFetcher dispatch."""

    @pytest.mark.asyncio
    async def test_probe_passes_cache_through(self, transport):
        """Test the GET probe carries the caller's cache directives untouched."""
        fetcher = init_server_fetcher(ENDPOINT, transport=transport, apq=True)

        response = await fetcher.fetch(QUERY, {"myVar": "baz"}, cache=CACHE)

        assert response.data == SUCCESS["data"]
        assert transport.methods == ["GET"]
        call = transport.calls[0]
        assert call.init.cache == CACHE
        assert call.init.credentials is None
        assert call.init.signal is None
        assert call.params["op"] == "myQuery"

    @pytest.mark.asyncio
    async def test_fallback(self, transport):
        """Test PersistedQueryNotFound is followed by one POST with the same cache."""
        transport.queue(NOT_FOUND)
        fetcher = init_server_fetcher(ENDPOINT, transport=transport, apq=True)

        response = await fetcher.fetch(QUERY, cache=CACHE)

        assert response.data == SUCCESS["data"]
        assert transport.methods == ["GET", "POST"]
        assert transport.calls[1].body["query"] == str(QUERY)
        assert transport.calls[1].init.cache == CACHE

    @pytest.mark.asyncio
    async def test_without_apq_posts(self, transport):
        """Test queries are POSTed when APQ is disabled."""
        fetcher = init_server_fetcher(ENDPOINT, transport=transport)

        await fetcher.fetch(QUERY)

        assert transport.methods == ["POST"]

    @pytest.mark.asyncio
    async def test_mutation_posts(self, transport):
        """Test mutations always go over POST."""
        fetcher = init_server_fetcher(ENDPOINT, transport=transport, apq=True)

        await fetcher.fetch(MUTATION)

        assert transport.methods == ["POST"]

    @pytest.mark.asyncio
    async def test_disable_cache(self, transport):
        """Test disabled caching forces an uncached POST without the APQ hash."""
        fetcher = init_server_fetcher(
            ENDPOINT, transport=transport, apq=True, dangerously_disable_cache=True
        )

        await fetcher.fetch(QUERY, {"myVar": "baz"}, cache=CACHE)

        assert transport.methods == ["POST"]
        call = transport.calls[0]
        assert call.body == {"query": str(QUERY), "variables": {"myVar": "baz"}}
        assert call.init.cache.cache == "no-store"
        assert call.init.cache.revalidate is None
        assert call.init.cache.tags == ("page",)
        # The caller's directives are not modified
        assert CACHE.revalidate == 900
        assert CACHE.cache == "force-cache"

    @pytest.mark.asyncio
    async def test_disable_cache_without_directives(self, transport):
        """Test disabled caching applies even when no directives are passed."""
        fetcher = init_server_fetcher(
            ENDPOINT, transport=transport, dangerously_disable_cache=True
        )

        await fetcher.fetch(QUERY)

        assert transport.calls[0].init.cache == CacheDirectives(cache="no-store")

    @pytest.mark.asyncio
    async def test_disable_cache_keeps_other_extensions(self, transport):
        """Test only the persisted-query extension is stripped."""
        fetcher = init_server_fetcher(
            ENDPOINT, transport=transport, dangerously_disable_cache=True
        )

        await fetcher.fetch(QUERY)

        assert "extensions" not in transport.calls[0].body
        assert compute_content_hash(str(QUERY)) not in transport.calls[0].init.body

    @pytest.mark.asyncio
    async def test_header_overrides(self, transport):
        """Test per-call headers are merged over default headers."""
        fetcher = init_server_fetcher(
            ENDPOINT,
            transport=transport,
            default_headers={"X-Preview": "0", "Content-Type": "application/graphql+json"},
        )

        await fetcher.fetch(QUERY, headers={"x-preview": "1"})

        assert transport.calls[0].init.headers == {
            "Content-Type": "application/graphql+json",
            "x-preview": "1",
        }

    @pytest.mark.asyncio
    async def test_token_forwarded(self, transport):
        """Test a caller token reaches the transport."""
        token = CancellationToken()
        fetcher = init_server_fetcher(ENDPOINT, transport=transport)

        await fetcher.fetch(QUERY, token=token)

        assert transport.calls[0].init.signal is token

    @pytest.mark.asyncio
    async def test_cancelled_token(self, transport):
        """Test a cancelled token stops the call before any request."""
        token = CancellationToken()
        token.cancel()
        fetcher = init_server_fetcher(ENDPOINT, transport=transport)

        with pytest.raises(CancellationError):
            await fetcher.fetch(QUERY, token=token)

        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_configured_timeout(self, transport):
        """Test a configured default timeout creates a token."""
        fetcher = init_server_fetcher(ENDPOINT, transport=transport, default_timeout=5)

        await fetcher.fetch(QUERY)

        assert transport.calls[0].init.signal.timeout_value == 5

    @pytest.mark.asyncio
    async def test_fetch_strict(self, transport):
        """Test strict fetching on the server dispatcher."""
        transport.queue(
            {"data": {"a": 1, "b": None}, "errors": [{"message": "b failed", "path": ["b"]}]}
        )
        fetcher = init_server_fetcher(ENDPOINT, transport=transport)

        data = await fetcher.fetch_strict(QUERY)

        assert data.a == 1
        with pytest.raises(GraphQLFieldError, match="b failed"):
            data.b


class TestServerTracing:
    """Test span bracketing around dispatches."""

    @pytest.mark.asyncio
    async def test_span_on_success(self, transport):
        """Test a successful call opens and ends one span named after the operation."""
        tracer = RecordingTracer()
        fetcher = ServerFetcher(
            ServerFetcherConfig(endpoint=ENDPOINT), transport=transport, tracer=tracer
        )

        await fetcher.fetch(QUERY)

        assert [span.name for span in tracer.spans] == ["myQuery"]
        assert tracer.spans[0].ended
        assert tracer.spans[0].error is None

    @pytest.mark.asyncio
    async def test_span_on_error(self, transport):
        """Test a failing call records the error and still ends the span."""
        transport.queue({}, status=503, status_text="Service Unavailable")
        tracer = RecordingTracer()
        fetcher = ServerFetcher(
            ServerFetcherConfig(endpoint=ENDPOINT), transport=transport, tracer=tracer
        )

        with pytest.raises(HTTPStatusError):
            await fetcher.fetch(QUERY)

        span = tracer.spans[0]
        assert span.ended
        assert "503 Service Unavailable" in span.error

    @pytest.mark.asyncio
    async def test_span_for_anonymous_operation(self, transport):
        """Test anonymous operations use the placeholder span name."""
        tracer = RecordingTracer()
        fetcher = ServerFetcher(
            ServerFetcherConfig(endpoint=ENDPOINT), transport=transport, tracer=tracer
        )

        await fetcher.fetch("{ foo }")

        assert tracer.spans[0].name == "(GraphQL)"
        assert transport.calls[0].url == f"{ENDPOINT}?op=%28GraphQL%29"

    @pytest.mark.asyncio
    async def test_graphql_errors_do_not_mark_span(self, transport):
        """Test errors returned in the envelope leave the span clean."""
        transport.queue({"data": None, "errors": [{"message": "nope"}]})
        tracer = RecordingTracer()
        fetcher = ServerFetcher(
            ServerFetcherConfig(endpoint=ENDPOINT), transport=transport, tracer=tracer
        )

        response = await fetcher.fetch(QUERY)

        assert response.has_errors
        assert tracer.spans[0].error is None
