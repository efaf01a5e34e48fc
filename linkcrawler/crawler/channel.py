"""
Bounded channel carrying fetch outcomes from workers to the orchestrator.
"""

import asyncio
from typing import Generic, TypeVar

T = TypeVar('T')


class ChannelClosedError(Exception):
    """Raised when sending on a channel that has been closed."""


class OutcomeChannel(Generic[T]):
    """
    Ordered, bounded multi-producer single-consumer queue.

    Senders wait while the channel is full. Once closed, further sends fail
    with ``ChannelClosedError``; items already queued can still be received.
    """

    def __init__(self, capacity: int = 1024):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=capacity)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, item: T):
        if self._closed:
            raise ChannelClosedError("Outcome channel is closed")
        await self._queue.put(item)

    async def receive(self) -> T:
        return await self._queue.get()

    def close(self):
        self._closed = True

    def empty(self) -> bool:
        return self._queue.empty()

    def qsize(self) -> int:
        return self._queue.qsize()
