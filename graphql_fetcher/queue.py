"""
Named serial queues for the client dispatcher.

Each queue name owns one FIFO worker that runs at most one submission at a
time. Distinct names run fully in parallel. The registry is owned by a
dispatcher instance instead of being process-wide.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SerialQueue:
    """FIFO queue executing one submission at a time."""

    def __init__(self, name: str) -> None:
        self.name = name
        # asyncio.Lock wakes waiters in acquisition order
        self._lock = asyncio.Lock()
        self._pending = 0
        self._completed = 0

    @property
    def pending(self) -> int:
        """Submissions waiting or running."""
        return self._pending

    @property
    def completed(self) -> int:
        return self._completed

    async def submit(self, work: Callable[[], Awaitable[T]]) -> T:
        """
        Run ``work`` after every earlier submission has finished.

        Args:
            work: Zero-argument coroutine function to execute

        Returns:
            Whatever ``work`` returns; its exceptions propagate unchanged
        """
        self._pending += 1
        try:
            async with self._lock:
                logger.debug("Queue %s running submission (%d pending)", self.name, self._pending)
                return await work()
        finally:
            self._pending -= 1
            self._completed += 1


class QueueRegistry:
    """Lazily creates one SerialQueue per name and keeps it for its lifetime."""

    def __init__(self) -> None:
        self._queues: Dict[str, SerialQueue] = {}

    def get(self, name: str) -> SerialQueue:
        queue = self._queues.get(name)
        if queue is None:
            queue = SerialQueue(name)
            self._queues[name] = queue
            logger.debug("Created serial queue %s", name)
        return queue

    def __contains__(self, name: object) -> bool:
        return name in self._queues

    def __len__(self) -> int:
        return len(self._queues)

    async def submit(self, name: str, work: Callable[[], Awaitable[T]]) -> T:
        return await self.get(name).submit(work)

    def get_stats(self) -> Dict[str, Dict[str, int]]:
        """Pending and completed counts per queue name."""
        return {
            name: {"pending": queue.pending, "completed": queue.completed}
            for name, queue in self._queues.items()
        }
