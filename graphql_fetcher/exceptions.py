"""
Exception hierarchy for graphql_fetcher.

This module provides the custom exceptions raised while negotiating and
executing GraphQL operations, plus helpers that convert transport-level
exceptions into this hierarchy.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List, Optional, Sequence

import aiohttp

ERROR_PREFIX = "graphql-fetcher: "


def error_message(message: str) -> str:
    """Prefix a message so failures are recognisable in aggregated logs."""
    return f"{ERROR_PREFIX}{message}"


class GraphQLFetcherError(Exception):
    """
    Base exception for all graphql_fetcher operations.

    Attributes:
        message: Human-readable error message
        url: URL that caused the error (if applicable)
        details: Additional error details as keyword arguments
    """

    def __init__(self, message: str, url: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message)
        self.message = message
        self.url = url
        self.details = kwargs


class TransportError(GraphQLFetcherError):
    """
    Raised when the transport call itself fails.

    Covers connection refused, DNS failures and any other exception raised by
    the fetch-like function before a response was received. Never retried.
    """

    pass


class CancellationError(GraphQLFetcherError):
    """
    Raised when the cancellation token fired before the operation completed.

    Attributes:
        reason: Why the token fired ("timeout" or a caller supplied reason)
        timeout_value: The timeout that was exceeded, in seconds, if any
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        reason: Optional[str] = None,
        timeout_value: Optional[float] = None,
    ) -> None:
        super().__init__(message, url)
        self.reason = reason
        self.timeout_value = timeout_value


class HTTPStatusError(TransportError):
    """Raised when a response was received outside the 2xx range. Never retried."""

    def __init__(
        self,
        message: str,
        status_code: int,
        status_text: str = "",
        url: Optional[str] = None,
    ) -> None:
        super().__init__(message, url)
        self.status_code = status_code
        self.status_text = status_text


class ParseError(GraphQLFetcherError):
    """Raised when a response body is not a JSON GraphQL envelope."""

    pass


class GraphQLOperationError(GraphQLFetcherError):
    """
    Raised when a parsed envelope carries GraphQL errors and the caller asked
    for errors to be fatal.

    Attributes:
        errors: The raw error entries from the response envelope
    """

    def __init__(
        self,
        message: str,
        errors: Optional[Sequence[Dict[str, Any]]] = None,
        url: Optional[str] = None,
    ) -> None:
        super().__init__(message, url)
        self.errors: List[Dict[str, Any]] = list(errors or [])

    @classmethod
    def from_errors(
        cls, errors: Sequence[Dict[str, Any]], url: Optional[str] = None
    ) -> "GraphQLOperationError":
        return cls(error_message(json.dumps(list(errors), indent=2)), errors, url)

    @property
    def messages(self) -> List[str]:
        return [str(error.get("message", "Unknown error")) for error in self.errors]


class StrictUnwrapError(GraphQLOperationError):
    """Raised by strict unwrapping when an envelope has errors and no data."""

    @classmethod
    def from_errors(
        cls, errors: Sequence[Dict[str, Any]], url: Optional[str] = None
    ) -> "StrictUnwrapError":
        messages = [str(error.get("message", "Unknown error")) for error in errors]
        return cls(error_message("; ".join(messages)), errors, url)


class GraphQLFieldError(GraphQLFetcherError):
    """
    Raised lazily when a field that failed on the server is read from
    strictly unwrapped data.

    Attributes:
        path: The error path as reported by the server
        extensions: The error's extensions bag
    """

    def __init__(
        self,
        message: str,
        path: Optional[Sequence[Any]] = None,
        extensions: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.path = list(path or [])
        self.extensions = extensions or {}


class ErrorHandler:
    """
    Utility class for converting transport exceptions into the
    graphql_fetcher hierarchy.
    """

    @staticmethod
    def handle_transport_error(
        error: BaseException, url: Optional[str] = None
    ) -> GraphQLFetcherError:
        """
        Convert an exception raised by a transport into a GraphQLFetcherError.

        Args:
            error: The original exception
            url: The URL that was being requested

        Returns:
            Appropriate GraphQLFetcherError subclass
        """
        if isinstance(error, GraphQLFetcherError):
            return error

        if isinstance(error, asyncio.TimeoutError):
            return CancellationError(
                error_message(f"Request timed out: {error}"), url=url, reason="timeout"
            )

        elif isinstance(error, aiohttp.ClientConnectionError):
            return TransportError(error_message(f"Connection error: {error}"), url=url)

        elif isinstance(error, aiohttp.ClientPayloadError):
            return TransportError(error_message(f"Payload error: {error}"), url=url)

        elif isinstance(error, aiohttp.ClientError):
            return TransportError(error_message(f"Client error: {error}"), url=url)

        else:
            return TransportError(
                error_message(f"Unexpected transport error: {error}"), url=url
            )
