"""A bounded, single-consumer asyncio channel with non-blocking sends."""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Generic, TypeVar

T = TypeVar("T")


class _SendError(Exception):
    def __init__(self, item: object, message: str) -> None:
        super().__init__(message)
        self.item = item


class ChannelFull(_SendError):
    """The channel is at capacity; the item was not sent."""

    def __init__(self, item: object) -> None:
        super().__init__(item, "channel is full")


class ChannelClosed(_SendError):
    """The receiving side has closed; the item was not sent."""

    def __init__(self, item: object) -> None:
        super().__init__(item, "channel is closed")


class Channel(Generic[T]):
    """A bounded queue: producers ``try_send``, one consumer ``recv``s."""

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("channel capacity must be at least 1")
        self.capacity = capacity
        self._items: deque[T] = deque()
        self._closed = False
        self._ready = asyncio.Event()

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._items)

    def try_send(self, item: T) -> None:
        """Enqueue without waiting; raise ChannelClosed or ChannelFull on failure."""
        if self._closed:
            raise ChannelClosed(item)
        if len(self._items) >= self.capacity:
            raise ChannelFull(item)
        self._items.append(item)
        self._ready.set()

    async def recv(self) -> T | None:
        """Wait for the next item; return None once closed and empty."""
        while True:
            if self._items:
                return self._items.popleft()
            if self._closed:
                return None
            self._ready.clear()
            await self._ready.wait()

    def close(self) -> None:
        """Refuse further sends; items already queued stay receivable."""
        self._closed = True
        self._ready.set()

    def drain(self) -> list[T]:
        """Remove and return every queued item, oldest first."""
        items = list(self._items)
        self._items.clear()
        return items