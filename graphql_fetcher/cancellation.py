"""
Cancellation tokens.

A single token is threaded through every network call of one logical
dispatch. It fires either when ``cancel()`` is called or when its deadline
passes, and awaiting work through ``guard()`` turns that into a
CancellationError.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from typing import Any, Awaitable, Optional, TypeVar

from .exceptions import CancellationError, error_message

T = TypeVar("T")


class CancellationToken:
    """
    Cooperative cancellation signal with an optional deadline.

    Examples:
        ```python
        token = CancellationToken.timeout(5.0)
        result = await fetcher.fetch(document, variables, token)
        ```
    """

    def __init__(self, timeout: Optional[float] = None) -> None:
        self._event = asyncio.Event()
        self._reason: Optional[str] = None
        self.timeout_value = timeout
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    @classmethod
    def timeout(cls, seconds: float) -> "CancellationToken":
        """Create a token that fires after ``seconds``."""
        return cls(timeout=seconds)

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def reason(self) -> Optional[str]:
        if self._reason:
            return self._reason
        if self.cancelled:
            return "timeout"
        return None

    @property
    def remaining(self) -> Optional[float]:
        """Seconds until the deadline, or None without a deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def _error(self, url: Optional[str]) -> CancellationError:
        reason = self.reason or "cancelled"
        if reason == "timeout":
            message = f"Request timed out after {self.timeout_value}s"
        else:
            message = f"Request cancelled: {reason}"
        return CancellationError(
            error_message(message),
            url=url,
            reason=reason,
            timeout_value=self.timeout_value,
        )

    def raise_if_cancelled(self, url: Optional[str] = None) -> None:
        if self.cancelled:
            raise self._error(url)

    async def guard(self, awaitable: Awaitable[T], url: Optional[str] = None) -> T:
        """
        Await ``awaitable`` unless the token fires first.

        The pending work is cancelled when the token fires.

        Raises:
            CancellationError: If the token fired before ``awaitable`` finished
        """
        if self.cancelled:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            raise self._error(url)

        task: "asyncio.Future[T]" = asyncio.ensure_future(awaitable)
        waiter: "asyncio.Future[Any]" = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait(
                {task, waiter},
                timeout=self.remaining,
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            waiter.cancel()
            if not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

        if task.cancelled():
            raise self._error(url)
        return task.result()
