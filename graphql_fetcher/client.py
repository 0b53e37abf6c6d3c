"""
Client-side dispatcher.

Wraps persisted-query negotiation for callers acting on behalf of a user:
credentials are always included, every call is bounded by a timeout, a
before-request hook can refresh state, and calls can be serialized per
named queue.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Union

from .cancellation import CancellationToken
from .config import ClientFetcherConfig
from .exceptions import GraphQLOperationError
from .helpers import document_to_text, get_document_hash, merge_headers
from .models import GqlResponse, RequestOptions
from .negotiation import negotiate
from .queue import QueueRegistry
from .request import build_request
from .response import strict_unwrap
from .transport import AiohttpTransport, Transport

logger = logging.getLogger(__name__)

BeforeRequestFn = Callable[[], Awaitable[None]]


@dataclass
class ClientRequestOptions:
    """Per-call options accepted by ClientFetcher."""

    token: Optional[CancellationToken] = None
    headers: Dict[str, str] = field(default_factory=dict)
    queue_name: Optional[str] = None


ClientOptionsArg = Union[
    None, CancellationToken, ClientRequestOptions, Mapping[str, Any]
]


def normalize_client_options(options: ClientOptionsArg) -> ClientRequestOptions:
    """
    Accept a bare token, a ClientRequestOptions or a mapping with the same
    keys (``signal`` is accepted as an alias of ``token``).
    """
    if options is None:
        return ClientRequestOptions()
    if isinstance(options, ClientRequestOptions):
        return options
    if isinstance(options, CancellationToken):
        return ClientRequestOptions(token=options)
    if isinstance(options, Mapping):
        unknown = set(options) - {"token", "signal", "headers", "queue_name", "queueName"}
        if unknown:
            raise TypeError(f"Unknown request options: {', '.join(sorted(unknown))}")
        return ClientRequestOptions(
            token=options.get("token", options.get("signal")),
            headers=dict(options.get("headers") or {}),
            queue_name=options.get("queue_name", options.get("queueName")),
        )
    raise TypeError(f"Unsupported request options: {type(options).__name__}")


class ClientFetcher:
    """
    GraphQL dispatcher for user-facing calls.

    Examples:
        ```python
        config = ClientFetcherConfig(endpoint="https://api.example.com/graphql", apq=True)

        async with AiohttpTransport() as transport:
            fetcher = ClientFetcher(config, transport=transport)
            result = await fetcher.fetch(query, {"id": "1"})

            # Serialized with every other call on the "cart" queue
            await fetcher.fetch(mutation, {"sku": "A1"}, {"queue_name": "cart"})
        ```
    """

    def __init__(
        self,
        config: ClientFetcherConfig,
        transport: Optional[Transport] = None,
        before_request: Optional[BeforeRequestFn] = None,
        queues: Optional[QueueRegistry] = None,
    ) -> None:
        self.config = config
        self.transport: Transport = transport if transport is not None else AiohttpTransport()
        self.before_request = before_request
        self.queues = queues if queues is not None else QueueRegistry()

    async def __aenter__(self) -> "ClientFetcher":
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
        options: ClientOptionsArg = None,
    ) -> GqlResponse:
        """
        Execute an operation and return its envelope.

        Args:
            document: Operation text, TypedDocumentString or parsed AST
            variables: Operation variables
            options: Token, ClientRequestOptions or mapping of options

        Returns:
            GqlResponse, possibly carrying GraphQL errors

        Raises:
            GraphQLOperationError: If ``raise_on_errors`` is set and the
                envelope has errors
        """
        call_options = normalize_client_options(options)
        query = document_to_text(document)
        request = build_request(
            query,
            variables,
            document_id=self.config.create_document_id(document),
            include_query=self.config.include_query,
            content_hash=get_document_hash(document),
        )

        token = call_options.token
        if token is None and self.config.default_timeout is not None:
            token = CancellationToken.timeout(self.config.default_timeout)

        request_options = RequestOptions(
            headers=merge_headers(self.config.default_headers, call_options.headers),
            token=token,
            credentials="include",
        )

        if self.before_request is not None:
            await self.before_request()

        async def execute() -> GqlResponse:
            return await negotiate(
                self.transport,
                self.config.url,
                request,
                request_options,
                persisted_queries=self.config.persisted_queries,
            )

        if call_options.queue_name:
            response = await self.queues.submit(call_options.queue_name, execute)
        else:
            response = await execute()

        if self.config.raise_on_errors and response.has_errors:
            raise GraphQLOperationError.from_errors(response.errors or [], self.config.url)

        return response

    async def fetch_strict(
        self,
        document: Any,
        variables: Optional[Mapping[str, Any]] = None,
        options: ClientOptionsArg = None,
    ) -> Any:
        """
        Execute an operation and return its data.

        Fields that failed on the server raise GraphQLFieldError when read.
        """
        return strict_unwrap(await self.fetch(document, variables, options))

    __call__ = fetch


def init_client_fetcher(
    endpoint: str,
    transport: Optional[Transport] = None,
    before_request: Optional[BeforeRequestFn] = None,
    **options: Any,
) -> ClientFetcher:
    """Create a ClientFetcher from keyword options, e.g. ``apq=True``."""
    config = ClientFetcherConfig(endpoint=endpoint, **options)
    return ClientFetcher(config, transport=transport, before_request=before_request)
