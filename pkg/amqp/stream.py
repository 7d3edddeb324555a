"""Closable asyncio queue used for the message, delivery and error streams."""

from __future__ import annotations

import asyncio
from collections import deque
from typing import AsyncIterator, Deque, Generic, TypeVar

T = TypeVar("T")


class StreamClosed(Exception):
    """Raised by Stream.get() once the stream is closed and drained."""

    pass


class Stream(Generic[T]):
    """Single-writer queue with an explicit end-of-stream.

    The owning task writes with put() and calls close() when it is done.
    Readers either await get() or iterate with ``async for``; items buffered
    before close() are still delivered.

    Attributes:
        maxsize: Capacity of the buffer, 0 for unbounded
    """

    def __init__(self, maxsize: int = 0):
        self.maxsize = maxsize
        self._items: Deque[T] = deque()
        self._closed = False
        self._readable = asyncio.Event()
        self._writable = asyncio.Event()

    @property
    def closed(self) -> bool:
        return self._closed

    def qsize(self) -> int:
        return len(self._items)

    def full(self) -> bool:
        return self.maxsize > 0 and len(self._items) >= self.maxsize

    async def put(self, item: T) -> None:
        """Add an item, waiting for room when the stream is bounded.

        Raises:
            StreamClosed: If the stream is closed before the item fits
        """
        while self.full() and not self._closed:
            self._writable.clear()
            await self._writable.wait()

        self.put_nowait(item)

    def put_nowait(self, item: T) -> None:
        """Add an item without waiting.

        Raises:
            StreamClosed: If the stream is closed
            asyncio.QueueFull: If a bounded stream has no room
        """
        if self._closed:
            raise StreamClosed("stream is closed")
        if self.full():
            raise asyncio.QueueFull()

        self._items.append(item)
        self._readable.set()

    def close(self) -> None:
        """Mark end-of-stream. Calling it more than once has no effect."""
        self._closed = True
        self._readable.set()
        self._writable.set()

    async def get(self) -> T:
        """Return the next item.

        Raises:
            StreamClosed: When the stream is closed and no items remain
        """
        while True:
            if self._items:
                item = self._items.popleft()
                self._writable.set()
                return item

            if self._closed:
                raise StreamClosed("stream is closed")

            self._readable.clear()
            await self._readable.wait()

    def __aiter__(self) -> AsyncIterator[T]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[T]:
        while True:
            try:
                item = await self.get()
            except StreamClosed:
                return
            yield item


__all__ = ["Stream", "StreamClosed"]
