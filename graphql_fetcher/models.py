"""
GraphQL request and response models.

This module defines the request descriptor, the response envelope and the
option structures passed between the dispatchers, the negotiation engine and
the transport.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple, Union

from .exceptions import ParseError, error_message

if TYPE_CHECKING:
    from .cancellation import CancellationToken


@dataclass(frozen=True)
class GraphQLRequest:
    """Canonical, transport-agnostic description of one GraphQL call."""

    operation_name: str
    query: Optional[str]
    document_id: Optional[str] = None
    variables: Optional[Mapping[str, Any]] = None
    extensions: Dict[str, Any] = field(default_factory=dict)
    include_query: bool = False
    operation_type: Optional[str] = None

    @property
    def persisted_query_hash(self) -> Optional[str]:
        persisted = self.extensions.get("persistedQuery") or {}
        return persisted.get("sha256Hash")

    def without_persisted_query(self) -> "GraphQLRequest":
        """Return a copy with the APQ extension removed."""
        extensions = {
            key: value
            for key, value in self.extensions.items()
            if key != "persistedQuery"
        }
        return replace(self, extensions=extensions)


@dataclass
class GqlResponse:
    """The ``{data, errors}`` envelope returned by a GraphQL endpoint."""

    data: Optional[Any] = None
    errors: Optional[List[Dict[str, Any]]] = None
    extensions: Optional[Dict[str, Any]] = None

    @property
    def has_errors(self) -> bool:
        """Check if the envelope carries GraphQL errors."""
        return bool(self.errors)

    @property
    def error_messages(self) -> List[str]:
        """Get list of error messages."""
        return [str(error.get("message", "Unknown error")) for error in self.errors or []]

    @classmethod
    def from_payload(cls, payload: Any) -> "GqlResponse":
        """
        Build an envelope from a decoded JSON body.

        Raises:
            ParseError: If the body is not a JSON object or ``errors`` is not a list
        """
        if not isinstance(payload, dict):
            raise ParseError(
                error_message(
                    f"Expected a JSON object response, got {type(payload).__name__}"
                )
            )

        errors = payload.get("errors")
        if errors is not None and not isinstance(errors, list):
            raise ParseError(error_message("Response 'errors' must be a list"))

        return cls(
            data=payload.get("data"),
            errors=errors,
            extensions=payload.get("extensions"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: Dict[str, Any] = {"data": self.data, "errors": self.errors}
        if self.extensions:
            result["extensions"] = self.extensions
        return result


Revalidate = Union[int, float, bool, None]


@dataclass(frozen=True)
class CacheDirectives:
    """
    Cache mode and revalidation hints forwarded verbatim to a server-side
    transport. The negotiation engine never inspects them.
    """

    cache: Optional[str] = None
    revalidate: Revalidate = None
    tags: Tuple[str, ...] = ()

    def without_revalidate(self) -> "CacheDirectives":
        return replace(self, revalidate=None)

    def with_cache(self, cache: Optional[str]) -> "CacheDirectives":
        return replace(self, cache=cache)

    def disabled(self) -> "CacheDirectives":
        """Directives that forbid any caching of the response."""
        return self.without_revalidate().with_cache("no-store")


@dataclass(frozen=True)
class RequestOptions:
    """Per-call options after normalization at the dispatcher boundary."""

    headers: Dict[str, str] = field(default_factory=dict)
    token: Optional["CancellationToken"] = None
    credentials: Optional[str] = None
    cache: Optional[CacheDirectives] = None


@dataclass(frozen=True)
class FetchInit:
    """Arguments for one transport call, mirroring a fetch ``RequestInit``."""

    method: str
    headers: Dict[str, str]
    body: Optional[str] = None
    credentials: Optional[str] = None
    cache: Optional[CacheDirectives] = None
    signal: Optional["CancellationToken"] = None
