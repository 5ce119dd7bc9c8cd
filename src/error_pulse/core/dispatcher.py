"""Fan-out of one record stream to several independent channels."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterable, AsyncIterator, Sequence
from typing import Generic, TypeVar

T = TypeVar("T")

_CLOSED = object()


class ChannelClosedError(RuntimeError):
    """Raised when sending on a channel that was already closed."""


class Channel(Generic[T]):
    """Single-consumer FIFO queue with explicit close.

    Iterating a channel yields items in send order and stops once the
    channel is closed and drained. ``capacity=0`` means unbounded.
    """

    def __init__(self, capacity: int = 0) -> None:
        if capacity < 0:
            raise ValueError("capacity must be >= 0")
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=capacity)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, item: T) -> None:
        if self._closed:
            raise ChannelClosedError("send on closed channel")
        await self._queue.put(item)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._queue.put(_CLOSED)

    async def __aiter__(self) -> AsyncIterator[T]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item


async def dispatch(source: AsyncIterable[T], channels: Sequence[Channel[T]]) -> int:
    """Forward every record to every channel, then close them all.

    Returns the number of records read. If the source raises, the channels
    are left open and the error propagates.
    """
    count = 0
    async for record in source:
        for channel in channels:
            await channel.send(record)
        count += 1

    for channel in channels:
        await channel.close()
    return count
