"""
HTTP transport for graphql_fetcher.

The negotiation engine talks to any fetch-like awaitable callable. This
module defines that interface and provides AiohttpTransport, the default
implementation built on a pooled aiohttp.ClientSession.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

import aiohttp
from yarl import URL

from .exceptions import ErrorHandler
from .models import FetchInit

logger = logging.getLogger(__name__)


class TransportResponse(Protocol):
    """Response-like object returned by a transport."""

    @property
    def ok(self) -> bool: ...

    @property
    def status(self) -> int: ...

    @property
    def status_text(self) -> str: ...

    async def json(self) -> Any: ...


class Transport(Protocol):
    """Fetch-like callable: ``await transport(url, init)``."""

    async def __call__(self, url: str, init: FetchInit) -> TransportResponse: ...


@dataclass
class FetchResponse:
    """Fully read HTTP response."""

    status: int
    status_text: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    async def json(self) -> Any:
        return json.loads(self.text)


class AiohttpTransport:
    """
    Transport backed by aiohttp.

    Cookies are only stored and sent for calls made with
    ``credentials="include"``. A caller-provided session keeps its own
    cookie policy. A ``no-store``/``no-cache`` cache mode is forwarded as a
    Cache-Control request header.

    Examples:
        ```python
        async with AiohttpTransport() as transport:
            fetcher = ServerFetcher(config, transport=transport)
            result = await fetcher.fetch(query, {"id": "1"})
        ```
    """

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: Optional[float] = None,
        user_agent: str = "graphql-fetcher/1.0",
    ) -> None:
        self._session = session
        self._owns_session = session is None
        self._timeout = timeout
        self._user_agent = user_agent
        self._cookie_jar: Optional[aiohttp.CookieJar] = None

    async def __aenter__(self) -> "AiohttpTransport":
        await self._create_session()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _create_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=100,
                limit_per_host=30,
                ttl_dns_cache=300,
                use_dns_cache=True,
                keepalive_timeout=30,
            )
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
                connector=connector,
                headers={"User-Agent": self._user_agent},
                cookie_jar=aiohttp.DummyCookieJar(),
                raise_for_status=False,
            )
            self._owns_session = True
        if self._cookie_jar is None:
            self._cookie_jar = aiohttp.CookieJar()
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    @staticmethod
    def _request_headers(init: FetchInit) -> Dict[str, str]:
        headers = dict(init.headers)
        if init.cache is not None and init.cache.cache in ("no-store", "no-cache"):
            headers.setdefault("Cache-Control", init.cache.cache)
        return headers

    async def __call__(self, url: str, init: FetchInit) -> FetchResponse:
        session = await self._create_session()
        headers = self._request_headers(init)
        include_cookies = init.credentials == "include" and self._cookie_jar is not None

        request_kwargs: Dict[str, Any] = {}
        if include_cookies:
            request_kwargs["cookies"] = self._cookie_jar.filter_cookies(URL(url))

        try:
            async with session.request(
                init.method,
                url,
                headers=headers,
                data=init.body.encode("utf-8") if init.body is not None else None,
                **request_kwargs,
            ) as response:
                text = await response.text()
                if include_cookies:
                    self._cookie_jar.update_cookies(response.cookies, response.url)
                return FetchResponse(
                    status=response.status,
                    status_text=response.reason or "",
                    headers=dict(response.headers),
                    text=text,
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(
                "Transport error for %s %s: %s", init.method, url, e,
                extra={"method": init.method, "url": url},
            )
            raise ErrorHandler.handle_transport_error(e, url) from e
