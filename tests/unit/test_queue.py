from __future__ import annotations

import asyncio

import pytest

from insightops import DeliveryQueue, QueueClosed


@pytest.mark.asyncio
async def test_get_yields_in_fifo_order() -> None:
    queue = DeliveryQueue()
    for payload in ["a", "b", "c"]:
        queue.put(payload)

    assert len(queue) == 3
    assert [await queue.get() for _ in range(3)] == ["a", "b", "c"]
    assert len(queue) == 0


@pytest.mark.asyncio
async def test_get_waits_for_put() -> None:
    queue = DeliveryQueue()
    getter = asyncio.create_task(queue.get())
    await asyncio.sleep(0)
    assert not getter.done()

    queue.put("late")

    assert await asyncio.wait_for(getter, timeout=1) == "late"


@pytest.mark.asyncio
async def test_close_discards_buffered_items() -> None:
    queue = DeliveryQueue()
    queue.put("a")
    queue.put("b")

    queue.close()

    assert queue.closed
    assert len(queue) == 0
    with pytest.raises(QueueClosed):
        await queue.get()


@pytest.mark.asyncio
async def test_close_wakes_pending_get() -> None:
    queue = DeliveryQueue()
    getter = asyncio.create_task(queue.get())
    await asyncio.sleep(0)

    queue.close()

    with pytest.raises(QueueClosed):
        await asyncio.wait_for(getter, timeout=1)
    # Later calls fail the same way.
    with pytest.raises(QueueClosed):
        await queue.get()


@pytest.mark.asyncio
async def test_put_after_close_is_ignored_and_close_is_idempotent() -> None:
    queue = DeliveryQueue()
    queue.close()
    queue.close()

    queue.put("dropped")

    assert len(queue) == 0
