"""
Server-side dispatcher.

Wraps persisted-query negotiation for rendering servers: cache directives
are passed through to the transport, each call is traced, and a
dangerously-disable-cache mode forces uncached POST requests for draft
content.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from .cancellation import CancellationToken
from .config import ServerFetcherConfig
from .helpers import document_to_text, get_document_hash, merge_headers
from .models import CacheDirectives, GqlResponse, RequestOptions
from .negotiation import negotiate
from .request import build_request
from .response import strict_unwrap
from .tracing import NoopTracer, Tracer
from .transport import AiohttpTransport, Transport

logger = logging.getLogger(__name__)


class ServerFetcher:
    """
    GraphQL dispatcher for server rendering.

    Examples:
        ```python
        config = ServerFetcherConfig(endpoint="https://api.example.com/graphql", apq=True)
        fetcher = ServerFetcher(config, tracer=LoggingTracer())

        result = await fetcher.fetch(
            query,
            {"slug": "home"},
            cache=CacheDirectives(revalidate=900, tags=("page",)),
        )
        ```
    """

    def __init__(
        self,
        config: ServerFetcherConfig,
        transport: Optional[Transport] = None,
        tracer: Optional[Tracer] = None,
    ) -> None:
        self.config = config
        self.transport: Transport = transport if transport is not None else AiohttpTransport()
        self.tracer: Tracer = tracer if tracer is not None else NoopTracer()

    async def __aenter__(self) -> "ServerFetcher":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        close = getattr(self.transport, "close", None)
        if close is not None:
            await close()

    async def fetch(
        self,
        document: Any,
        variables: Optional[Mapping[str, Any]] = None,
        cache: Optional[CacheDirectives] = None,
        token: Optional[CancellationToken] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> GqlResponse:
        """
        Execute an operation and return its envelope.

        Args:
            document: Operation text, TypedDocumentString or parsed AST
            variables: Operation variables
            cache: Cache directives forwarded to the transport unchanged
            token: Cancellation token; defaults to one derived from
                ``default_timeout`` when that is configured
            headers: Per-call headers merged over ``default_headers``

        Returns:
            GqlResponse, possibly carrying GraphQL errors
        """
        query = document_to_text(document)
        request = build_request(
            query,
            variables,
            document_id=self.config.create_document_id(document),
            include_query=self.config.include_query,
            content_hash=get_document_hash(document),
        )

        if token is None and self.config.default_timeout is not None:
            token = CancellationToken.timeout(self.config.default_timeout)

        cache = cache if cache is not None else CacheDirectives()
        force_post = False
        if self.config.dangerously_disable_cache:
            # Draft content must never be cached or served by hash
            cache = cache.disabled()
            request = request.without_persisted_query()
            force_post = True

        options = RequestOptions(
            headers=merge_headers(self.config.default_headers, headers),
            token=token,
            cache=cache,
        )

        with self.tracer.span(request.operation_name) as span:
            logger.debug("Dispatching %s", span.name)
            return await negotiate(
                self.transport,
                self.config.url,
                request,
                options,
                persisted_queries=self.config.persisted_queries,
                force_post=force_post,
            )

    async def fetch_strict(
        self,
        document: Any,
        variables: Optional[Mapping[str, Any]] = None,
        cache: Optional[CacheDirectives] = None,
        token: Optional[CancellationToken] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Execute an operation and return strictly unwrapped data."""
        response = await self.fetch(document, variables, cache, token, headers)
        return strict_unwrap(response)

    __call__ = fetch


def init_server_fetcher(
    endpoint: str,
    transport: Optional[Transport] = None,
    tracer: Optional[Tracer] = None,
    **options: Any,
) -> ServerFetcher:
    """Create a ServerFetcher from keyword options, e.g. ``dangerously_disable_cache=True``."""
    config = ServerFetcherConfig(endpoint=endpoint, **options)
    return ServerFetcher(config, transport=transport, tracer=tracer)
