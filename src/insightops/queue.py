"""Unbounded, order-preserving queue of serialized payloads.

Producers `put` without ever blocking; the single delivery loop `get`s in FIFO
order. Closing the queue discards anything still buffered and makes every
pending and future `get` raise `QueueClosed`.
"""

from __future__ import annotations

import asyncio
from typing import cast

from .errors import QueueClosed

# Wakes a reader blocked in `get()` when the queue is closed.
_CLOSED = object()


class DeliveryQueue:
    """Single-consumer FIFO of JSON payloads (producers -> delivery loop)."""

    def __init__(self) -> None:
        """Create an empty, open queue."""
        self._queue: asyncio.Queue[str | object] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        """Whether `close()` has been called."""
        return self._closed

    def __len__(self) -> int:
        if self._closed:
            return 0
        return self._queue.qsize()

    def put(self, payload: str) -> None:
        """Append a payload to the tail; a no-op once the queue is closed."""
        if self._closed:
            return
        self._queue.put_nowait(payload)

    async def get(self) -> str:
        """Dequeue the next payload (awaits until one is available)."""
        if self._closed:
            raise QueueClosed("delivery queue is closed")
        item = await self._queue.get()
        if item is _CLOSED or self._closed:
            raise QueueClosed("delivery queue is closed")
        return cast(str, item)

    def close(self) -> None:
        """Close the queue, discarding buffered payloads. Safe to call multiple times."""
        if self._closed:
            return
        self._closed = True
        while not self._queue.empty():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED)
