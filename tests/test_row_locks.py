import asyncio

import pytest

from db.inventory import RowLocks


async def test_hold_serializes_same_key():
    locks = RowLocks()
    order = []

    async def worker(name):
        async with locks.hold(1):
            order.append(f"{name}:in")
            await asyncio.sleep(0.01)
            order.append(f"{name}:out")

    await asyncio.gather(worker("a"), worker("b"))

    assert order == ["a:in", "a:out", "b:in", "b:out"]


async def test_different_keys_do_not_contend():
    locks = RowLocks(timeout=0.5)

    async with locks.hold(1):
        assert locks.is_locked(1)
        assert not locks.is_locked(2)
        async with locks.hold(2):
            assert locks.is_locked(2)


async def test_entries_are_dropped_when_idle():
    locks = RowLocks()

    async with locks.hold("a"):
        assert len(locks) == 1

    assert len(locks) == 0
    assert not locks.is_locked("a")


async def test_released_on_error():
    locks = RowLocks()

    with pytest.raises(RuntimeError):
        async with locks.hold(7):
            raise RuntimeError("boom")

    assert len(locks) == 0


async def test_timeout_raises_and_cleans_up_waiter():
    locks = RowLocks(timeout=0.05)

    async with locks.hold(1):
        with pytest.raises(asyncio.TimeoutError):
            async with locks.hold(1):
                pass
        assert len(locks) == 1

    assert len(locks) == 0
