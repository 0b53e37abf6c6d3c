"""
Shared test fixtures for the graphql_fetcher test suite.
"""

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional
from urllib.parse import parse_qsl, urlsplit

import pytest

from graphql_fetcher.helpers import TypedDocumentString
from graphql_fetcher.models import FetchInit
from graphql_fetcher.transport import FetchResponse

ENDPOINT = "https://localhost/graphql"

QUERY = TypedDocumentString(
    """
	query myQuery {
		foo
		bar
	}
"""
)

MUTATION = TypedDocumentString(
    """
	mutation myMutation {
		foo
		bar
	}
"""
)

SUCCESS = {"data": {"foo": "foo", "bar": "bar"}}
NOT_FOUND = {"errors": [{"message": "PersistedQueryNotFound"}]}


@dataclass
class RecordedCall:
    """One call made to the fake transport."""

    url: str
    init: FetchInit

    @property
    def method(self) -> str:
        return self.init.method

    @property
    def path(self) -> str:
        parts = urlsplit(self.url)
        return f"{parts.scheme}://{parts.netloc}{parts.path}"

    @property
    def params(self) -> Dict[str, str]:
        return dict(parse_qsl(urlsplit(self.url).query))

    @property
    def body(self) -> Optional[Dict[str, Any]]:
        if self.init.body is None:
            return None
        return json.loads(self.init.body)


Handler = Callable[[RecordedCall], Awaitable[FetchResponse]]


def json_response(payload: Any, status: int = 200, status_text: str = "OK") -> FetchResponse:
    return FetchResponse(status=status, status_text=status_text, text=json.dumps(payload))


class FakeTransport:
    """
    In-memory fetch-like transport.

    Responses are served from a queue in order; when the queue is empty the
    default response (or ``handler``) is used.
    """

    def __init__(self, default: Optional[FetchResponse] = None) -> None:
        self.calls: List[RecordedCall] = []
        self.responses: List[Any] = []
        self.default = default or json_response(SUCCESS)
        self.handler: Optional[Handler] = None

    def queue(self, payload: Any = None, status: int = 200, status_text: str = "OK") -> None:
        self.responses.append(json_response(payload, status, status_text))

    def queue_raw(self, response: Any) -> None:
        self.responses.append(response)

    @property
    def methods(self) -> List[str]:
        return [call.method for call in self.calls]

    async def __call__(self, url: str, init: FetchInit) -> FetchResponse:
        call = RecordedCall(url, init)
        self.calls.append(call)
        await asyncio.sleep(0)

        if self.responses:
            response = self.responses.pop(0)
        elif self.handler is not None:
            response = await self.handler(call)
        else:
            response = self.default

        if isinstance(response, BaseException):
            raise response
        return response


@pytest.fixture
def transport() -> FakeTransport:
    """Fake transport answering every call with a successful envelope."""
    return FakeTransport()
