"""
GraphQL request dispatch with automatic persisted-query negotiation.

This package executes GraphQL queries and mutations against a single
endpoint: queries can be probed over GET using automatic persisted queries
(APQ) with a POST fallback, responses are normalized into a data/errors
envelope, and client calls can be serialized per named queue.
"""

from .cancellation import CancellationToken
from .client import ClientFetcher, ClientRequestOptions, init_client_fetcher
from .config import (
    ClientFetcherConfig,
    FetcherConfig,
    ServerFetcherConfig,
    load_config_from_env,
)
from .exceptions import (
    CancellationError,
    GraphQLFetcherError,
    GraphQLFieldError,
    GraphQLOperationError,
    HTTPStatusError,
    ParseError,
    StrictUnwrapError,
    TransportError,
)
from .helpers import (
    TypedDocumentString,
    classify_operation,
    compute_content_hash,
    extract_operation_name,
    merge_headers,
)
from .models import CacheDirectives, GqlResponse, GraphQLRequest, RequestOptions
from .negotiation import negotiate
from .queue import QueueRegistry
from .request import (
    build_request,
    create_request_body,
    create_request_search_params,
    is_persisted_query,
)
from .response import StrictData, parse_response, strict_unwrap
from .server import ServerFetcher, init_server_fetcher
from .tracing import LoggingTracer, NoopTracer, RecordingTracer
from .transport import AiohttpTransport, FetchResponse

__version__ = "0.1.0"

__all__ = [
    # Dispatchers
    "ClientFetcher",
    "ClientRequestOptions",
    "ServerFetcher",
    "init_client_fetcher",
    "init_server_fetcher",
    # Configuration
    "FetcherConfig",
    "ClientFetcherConfig",
    "ServerFetcherConfig",
    "load_config_from_env",
    # Requests and responses
    "GraphQLRequest",
    "GqlResponse",
    "CacheDirectives",
    "RequestOptions",
    "build_request",
    "create_request_body",
    "create_request_search_params",
    "is_persisted_query",
    "negotiate",
    "parse_response",
    "strict_unwrap",
    "StrictData",
    # Documents
    "TypedDocumentString",
    "classify_operation",
    "compute_content_hash",
    "extract_operation_name",
    "merge_headers",
    # Runtime
    "CancellationToken",
    "QueueRegistry",
    "AiohttpTransport",
    "FetchResponse",
    "NoopTracer",
    "LoggingTracer",
    "RecordingTracer",
    # Exceptions
    "GraphQLFetcherError",
    "TransportError",
    "CancellationError",
    "HTTPStatusError",
    "ParseError",
    "GraphQLOperationError",
    "StrictUnwrapError",
    "GraphQLFieldError",
]
