"""Tests for the FIFO concurrency semaphore."""

import asyncio

import pytest

from imagen_gateway.core.semaphore import FairSemaphore


@pytest.mark.unit
async def test_acquire_up_to_permits_without_waiting():
    sem = FairSemaphore(2)

    await sem.acquire()
    await sem.acquire()

    assert sem.in_use == 2
    assert sem.available == 0
    assert sem.waiting == 0


@pytest.mark.unit
async def test_release_hands_permit_to_oldest_waiter():
    """Permits go to waiters in arrival order, never back to the free count."""
    sem = FairSemaphore(1)
    await sem.acquire()
    order: list[str] = []

    async def worker(name: str) -> None:
        await sem.acquire()
        order.append(name)

    tasks = [asyncio.create_task(worker(name)) for name in ("a", "b", "c")]
    await asyncio.sleep(0)
    assert sem.waiting == 3

    sem.release()
    await asyncio.sleep(0)
    assert order == ["a"]
    assert sem.available == 0

    sem.release()
    await asyncio.sleep(0)
    sem.release()
    await asyncio.sleep(0)

    assert order == ["a", "b", "c"]
    await asyncio.gather(*tasks)


@pytest.mark.unit
async def test_new_acquirer_does_not_overtake_queued_waiter():
    sem = FairSemaphore(1)
    await sem.acquire()
    order: list[str] = []

    async def worker(name: str) -> None:
        await sem.acquire()
        order.append(name)
        sem.release()

    queued = asyncio.create_task(worker("queued"))
    await asyncio.sleep(0)

    sem.release()
    late = asyncio.create_task(worker("late"))
    await asyncio.gather(queued, late)

    assert order == ["queued", "late"]
    assert sem.available == 1


@pytest.mark.unit
async def test_cancelled_waiter_leaves_queue_without_leaking_permit():
    sem = FairSemaphore(1)
    await sem.acquire()

    waiter = asyncio.create_task(sem.acquire())
    await asyncio.sleep(0)
    assert sem.waiting == 1

    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter

    assert sem.waiting == 0
    sem.release()
    assert sem.available == 1


@pytest.mark.unit
async def test_context_manager_releases_on_error():
    sem = FairSemaphore(1)

    with pytest.raises(RuntimeError):
        async with sem:
            assert sem.in_use == 1
            raise RuntimeError("boom")

    assert sem.in_use == 0
    assert sem.available == 1


@pytest.mark.unit
def test_rejects_non_positive_permits():
    with pytest.raises(ValueError):
        FairSemaphore(0)
