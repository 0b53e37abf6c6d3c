"""
Response envelope handling.

parse_response validates a transport response and decodes the GraphQL
envelope. strict_unwrap turns an envelope into data that raises lazily for
fields the server reported errors on.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any, Dict, Iterator, List, Optional

from .exceptions import (
    GraphQLFieldError,
    HTTPStatusError,
    ParseError,
    StrictUnwrapError,
    error_message,
)
from .models import GqlResponse, GraphQLRequest
from .transport import TransportResponse

logger = logging.getLogger(__name__)


async def parse_response(
    request: GraphQLRequest,
    response: TransportResponse,
    url: Optional[str] = None,
) -> GqlResponse:
    """
    Check that a response succeeded and decode its envelope.

    GraphQL errors in the envelope are returned, not raised.

    Raises:
        HTTPStatusError: If the status is outside the 2xx range
        ParseError: If the body is not a JSON object
    """
    if not response.ok:
        raise HTTPStatusError(
            error_message(
                f"Response for {request.operation_name} errored: "
                f"{response.status} {response.status_text}"
            ),
            status_code=response.status,
            status_text=response.status_text,
            url=url,
        )

    try:
        payload = await response.json()
    except (json.JSONDecodeError, UnicodeDecodeError, ValueError) as e:
        raise ParseError(
            error_message(f"Could not parse JSON from response for {request.operation_name}: {e}"),
            url=url,
        ) from e

    return GqlResponse.from_payload(payload)


def _field_error(error: Dict[str, Any]) -> GraphQLFieldError:
    return GraphQLFieldError(
        str(error.get("message", "Unknown error")),
        path=error.get("path"),
        extensions=error.get("extensions"),
    )


def _errors_below(errors: List[Dict[str, Any]], key: Any, depth: int) -> List[Dict[str, Any]]:
    """Errors whose path continues with ``key`` at position ``depth``."""
    result = []
    for error in errors:
        path = error.get("path") or []
        if len(path) > depth and path[depth] == key:
            result.append(error)
    return result


def _wrap(value: Any, errors: List[Dict[str, Any]], depth: int) -> Any:
    if not errors:
        return value
    if isinstance(value, Mapping):
        return StrictData(value, errors, depth)
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        return StrictList(value, errors, depth)
    return value


def _resolve(value: Any, key: Any, errors: List[Dict[str, Any]], depth: int) -> Any:
    below = _errors_below(errors, key, depth)
    for error in below:
        # The error belongs to this field itself, or its value was nulled
        if len(error["path"]) == depth + 1 or value is None:
            raise _field_error(error)
    return _wrap(value, below, depth + 1)


class StrictData(Mapping):
    """
    Read-only view of response data that raises on failed fields.

    Reading a field (by key or attribute) whose path appears in an error
    raises GraphQLFieldError with the server's message and full error path.
    Other fields read normally, so partial results stay usable.

    Attribute access resolves Mapping methods first: fields named ``get``,
    ``items``, ``keys`` or ``values`` must be read by key.

    Args:
        data: The response data, or the sub-object at ``depth``
        errors: Error entries as reported by the server
        depth: Number of path segments above ``data``
    """

    def __init__(
        self,
        data: Mapping[str, Any],
        errors: Optional[List[Dict[str, Any]]] = None,
        depth: int = 0,
    ) -> None:
        self._data = data
        self._errors = list(errors or [])
        self._depth = depth

    def __getitem__(self, key: str) -> Any:
        return _resolve(self._data[key], key, self._errors, self._depth)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self[name]
        except KeyError:
            raise AttributeError(name) from None

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"StrictData({dict(self._data)!r}, errors={len(self._errors)})"


class StrictList(Sequence):
    """List counterpart of StrictData, indexed by position."""

    def __init__(self, items: Sequence[Any], errors: List[Dict[str, Any]], depth: int = 0) -> None:
        self._items = items
        self._errors = errors
        self._depth = depth

    def __getitem__(self, index: Any) -> Any:
        if isinstance(index, slice):
            return [self[i] for i in range(*index.indices(len(self)))]
        if index < 0:
            index += len(self._items)
        return _resolve(self._items[index], index, self._errors, self._depth)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"StrictList({list(self._items)!r}, errors={len(self._errors)})"


def strict_unwrap(response: GqlResponse) -> Any:
    """
    Unwrap an envelope for consumers that only want data.

    Returns:
        The data; a StrictData view when it carries partial errors

    Raises:
        StrictUnwrapError: If there are errors and no data
    """
    errors = list(response.errors or [])
    if errors and response.data is None:
        raise StrictUnwrapError.from_errors(errors)

    if errors:
        logger.debug("Unwrapping partial response with %d errors", len(errors))
        if isinstance(response.data, Mapping):
            return StrictData(response.data, errors)
    return response.data


def materialize(value: Any) -> Any:
    """Deep-copy strict data into plain dicts and lists, raising on failed fields."""
    if isinstance(value, Mapping):
        return {key: materialize(value[key]) for key in value}
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        return [materialize(item) for item in value]
    return value
