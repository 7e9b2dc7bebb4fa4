"""Tests for per-conversation locks."""

import asyncio

import pytest

from chat.locks import KeyedLock


@pytest.mark.asyncio
class TestKeyedLock:
    async def test_same_key_is_serialized(self) -> None:
        locks = KeyedLock()
        order = []

        async def critical(name: str) -> None:
            async with locks.hold("c1"):
                order.append(f"{name}-start")
                await asyncio.sleep(0.01)
                order.append(f"{name}-end")

        await asyncio.gather(critical("a"), critical("b"))

        assert order == ["a-start", "a-end", "b-start", "b-end"]

    async def test_different_keys_run_in_parallel(self) -> None:
        locks = KeyedLock()
        inside = asyncio.Event()

        async def holder() -> None:
            async with locks.hold("c1"):
                await asyncio.wait_for(inside.wait(), timeout=1)

        async def other() -> None:
            async with locks.hold("c2"):
                inside.set()

        await asyncio.gather(holder(), other())

    async def test_locks_are_released_after_use(self) -> None:
        locks = KeyedLock()

        async with locks.hold("c1"):
            assert locks.is_locked("c1")
            assert len(locks) == 1

        assert not locks.is_locked("c1")
        assert len(locks) == 0

    async def test_lock_released_on_error(self) -> None:
        locks = KeyedLock()

        with pytest.raises(RuntimeError):
            async with locks.hold("c1"):
                raise RuntimeError("boom")

        assert len(locks) == 0
