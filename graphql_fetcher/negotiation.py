"""
Persisted-query negotiation.

Decides between a GET probe and a POST for each operation, interprets the
``PersistedQueryNotFound`` sentinel and performs the single POST fallback.

States::

    START -> PROBE (GET) -> SUCCESS
                         -> NOT_FOUND -> FALLBACK (POST) -> SUCCESS | FAILURE
    START -> FORCE_POST -> SUCCESS | FAILURE

At most one GET and one POST are issued per call. Transport failures,
non-2xx statuses and unparseable bodies are terminal in every state.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Awaitable, Optional

from .exceptions import ErrorHandler, GraphQLFetcherError
from .helpers import classify_operation, has_persisted_query_error
from .models import FetchInit, GqlResponse, GraphQLRequest, RequestOptions
from .request import (
    create_operation_url,
    create_request_body,
    create_request_url,
    is_persisted_query,
)
from .response import parse_response
from .transport import Transport, TransportResponse

logger = logging.getLogger(__name__)


class NegotiationStep(str, Enum):
    """Steps a negotiation can take."""

    PROBE = "probe"
    FALLBACK = "fallback"
    FORCE_POST = "force_post"


def _log_step(request: GraphQLRequest, step: NegotiationStep, endpoint: str) -> None:
    logger.debug(
        "%s: %s",
        request.operation_name,
        step.value,
        extra={"operation": request.operation_name, "step": step.value, "url": endpoint},
    )


async def _call_transport(
    transport: Transport,
    url: str,
    init: FetchInit,
    options: RequestOptions,
) -> TransportResponse:
    try:
        pending: Awaitable[TransportResponse] = transport(url, init)
        if options.token is not None:
            return await options.token.guard(pending, url=url)
        return await pending
    except GraphQLFetcherError:
        raise
    except Exception as e:
        logger.warning(
            "%s %s failed: %s", init.method, url, e, extra={"method": init.method, "url": url}
        )
        raise ErrorHandler.handle_transport_error(e, url) from e


async def _read(
    request: GraphQLRequest,
    response: TransportResponse,
    url: str,
    options: RequestOptions,
) -> GqlResponse:
    if options.token is not None:
        return await options.token.guard(parse_response(request, response, url), url=url)
    return await parse_response(request, response, url)


async def gql_post(
    transport: Transport,
    endpoint: str,
    request: GraphQLRequest,
    options: RequestOptions,
) -> GqlResponse:
    """POST the full request body to ``<endpoint>?op=<name>``."""
    url = create_operation_url(endpoint, request)
    init = FetchInit(
        method="POST",
        headers=dict(options.headers),
        body=create_request_body(request),
        credentials=options.credentials,
        cache=options.cache,
        signal=options.token,
    )
    response = await _call_transport(transport, url, init, options)
    return await _read(request, response, url, options)


async def gql_persisted_query(
    transport: Transport,
    endpoint: str,
    request: GraphQLRequest,
    options: RequestOptions,
) -> GqlResponse:
    """GET the request serialized into the query string."""
    url = create_request_url(endpoint, request)
    init = FetchInit(
        method="GET",
        headers=dict(options.headers),
        credentials=options.credentials,
        cache=options.cache,
        signal=options.token,
    )
    response = await _call_transport(transport, url, init, options)
    return await _read(request, response, url, options)


def should_probe(
    request: GraphQLRequest, operation_type: str, persisted_queries: bool
) -> bool:
    """
    Whether the call starts with a GET probe.

    Only queries are probed, and only when APQ is enabled or the request is
    pinned to a document id.
    """
    if operation_type != "query":
        return False
    return persisted_queries or is_persisted_query(request)


async def negotiate(
    transport: Transport,
    endpoint: str,
    request: GraphQLRequest,
    options: Optional[RequestOptions] = None,
    *,
    persisted_queries: bool = False,
    force_post: bool = False,
    operation_type: Optional[str] = None,
) -> GqlResponse:
    """
    Execute one GraphQL call with persisted-query negotiation.

    Args:
        transport: Fetch-like callable
        endpoint: GraphQL endpoint URL
        request: Request descriptor from build_request
        options: Normalized per-call options
        persisted_queries: Enable the GET probe for queries
        force_post: Skip the probe unconditionally
        operation_type: Overrides the classification recorded by
            build_request

    Returns:
        The decoded envelope, including any GraphQL errors

    Raises:
        TransportError, CancellationError, HTTPStatusError, ParseError
    """
    options = options if options is not None else RequestOptions()

    if operation_type is None:
        operation_type = request.operation_type or classify_operation(request.query or "")
    probe = not force_post and should_probe(request, operation_type, persisted_queries)

    if not probe:
        _log_step(request, NegotiationStep.FORCE_POST, endpoint)
        return await gql_post(transport, endpoint, request, options)

    _log_step(request, NegotiationStep.PROBE, endpoint)
    response = await gql_persisted_query(transport, endpoint, request, options)

    if not has_persisted_query_error(response.errors):
        return response

    if is_persisted_query(request):
        # A pinned document unknown to the server is a configuration problem
        logger.warning(
            "%s: server does not know document %s",
            request.operation_name,
            request.document_id,
            extra={"operation": request.operation_name, "url": endpoint},
        )
        return response

    _log_step(request, NegotiationStep.FALLBACK, endpoint)
    return await gql_post(transport, endpoint, request, options)
