"""
Request construction and serialization.

Builds the canonical GraphQLRequest for an operation and serializes it as a
GET query string or a POST body. Both serializations apply the same rule for
whether the query text and its APQ hash are transmitted.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Tuple
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from .helpers import (
    DEFAULT_OPERATION_NAME,
    classify_operation,
    compute_content_hash,
    extract_operation_name,
    is_not_empty,
    prune_object,
    to_json,
)
from .models import GraphQLRequest

APQ_VERSION = 1


def build_request(
    query: str,
    variables: Optional[Mapping[str, Any]] = None,
    document_id: Optional[str] = None,
    include_query: bool = False,
    content_hash: Optional[str] = None,
) -> GraphQLRequest:
    """
    Create the request descriptor for one call.

    Args:
        query: Operation text
        variables: Operation variables
        document_id: Allow-list identifier of the document, if any
        include_query: Send the query text even when a document id is known
        content_hash: Precomputed sha256 of ``query``

    Returns:
        GraphQLRequest
    """
    sends_query = not document_id or include_query

    # The APQ hash is only useful when the query text may be transmitted.
    # It is unrelated to the document id used for allow-listing.
    extensions = {}
    if sends_query:
        extensions = {
            "persistedQuery": {
                "version": APQ_VERSION,
                "sha256Hash": content_hash or compute_content_hash(query),
            }
        }

    return GraphQLRequest(
        operation_name=extract_operation_name(query) or DEFAULT_OPERATION_NAME,
        query=query if sends_query else None,
        document_id=document_id or None,
        variables=variables,
        extensions=extensions,
        include_query=include_query,
        operation_type=classify_operation(query),
    )


def is_persisted_query(request: GraphQLRequest) -> bool:
    """True when the request is pinned to an allow-listed document id."""
    return request.document_id is not None


def _sends_query(request: GraphQLRequest) -> bool:
    return not request.document_id or request.include_query


def create_request_search_params(request: GraphQLRequest) -> List[Tuple[str, str]]:
    """Serialize a request as ordered query-string pairs for a GET probe."""
    params = [("op", request.operation_name)]

    if request.document_id:
        params.append(("documentId", request.document_id))
    if is_not_empty(request.variables):
        params.append(("variables", to_json(dict(request.variables))))
    if is_not_empty(request.extensions) and _sends_query(request):
        params.append(("extensions", to_json(request.extensions)))

    return params


def _append_query(url: str, params: List[Tuple[str, str]]) -> str:
    parts = urlsplit(url)
    existing = parse_qsl(parts.query, keep_blank_values=True)
    query = urlencode(existing + [(key, value) for key, value in params if value])
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def create_request_url(url: str, request: GraphQLRequest) -> str:
    """Endpoint URL carrying the full GET serialization of ``request``."""
    return _append_query(url, create_request_search_params(request))


def create_operation_url(url: str, request: GraphQLRequest) -> str:
    """Endpoint URL with only ``?op=<name>``, used for POST requests."""
    return _append_query(url, [("op", request.operation_name)])


def create_request_body(request: GraphQLRequest) -> str:
    """
    Serialize a request as a POST body.

    The query text is omitted when a document id is present and the caller
    did not force inclusion, so it is never transmitted twice.
    """
    body = {
        "documentId": request.document_id,
        "query": request.query if _sends_query(request) else None,
        "variables": dict(request.variables) if request.variables else None,
        "extensions": request.extensions,
    }
    return to_json(prune_object(body))
