"""
Tracing collaborators for the dispatchers.

A tracer brackets each dispatch in a span. Spans only observe: recording an
error never changes what the dispatcher raises or returns.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import ContextManager, Iterator, List, Optional, Protocol

logger = logging.getLogger(__name__)


class Span(Protocol):
    name: str

    def set_error(self, message: str) -> None: ...


class Tracer(Protocol):
    def span(self, name: str) -> ContextManager[Span]: ...


class RecordedSpan:
    """Plain span used by the built-in tracers."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.error: Optional[str] = None
        self.started_at = time.monotonic()
        self.ended_at: Optional[float] = None

    def set_error(self, message: str) -> None:
        self.error = message

    def end(self) -> None:
        if self.ended_at is None:
            self.ended_at = time.monotonic()

    @property
    def ended(self) -> bool:
        return self.ended_at is not None

    @property
    def duration(self) -> Optional[float]:
        if self.ended_at is None:
            return None
        return self.ended_at - self.started_at


@contextmanager
def _bracket(span: RecordedSpan) -> Iterator[RecordedSpan]:
    try:
        yield span
    except BaseException as e:
        span.set_error(str(e) or type(e).__name__)
        raise
    finally:
        span.end()


class NoopTracer:
    """Tracer that records nothing."""

    def span(self, name: str) -> ContextManager[RecordedSpan]:
        return _bracket(RecordedSpan(name))


class LoggingTracer:
    """Tracer that logs each span's duration and outcome."""

    def __init__(self, level: int = logging.DEBUG) -> None:
        self.level = level

    @contextmanager
    def span(self, name: str) -> Iterator[RecordedSpan]:
        span = RecordedSpan(name)
        try:
            with _bracket(span):
                yield span
        finally:
            if span.error:
                logger.log(self.level, "span %s failed after %.3fs: %s", name, span.duration, span.error)
            else:
                logger.log(self.level, "span %s finished in %.3fs", name, span.duration)


class RecordingTracer:
    """Tracer keeping every span in memory, useful in tests."""

    def __init__(self) -> None:
        self.spans: List[RecordedSpan] = []

    def span(self, name: str) -> ContextManager[RecordedSpan]:
        span = RecordedSpan(name)
        self.spans.append(span)
        return _bracket(span)
