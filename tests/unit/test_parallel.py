"""Tests for feeder.execution.parallel."""

import asyncio

import pytest

from feeder.errors import RetryExhaustedError
from feeder.execution.parallel import ParallelTaskGroup


class TestParallelTaskGroup:
    """Test cases for ParallelTaskGroup."""

    def test_enqueue_and_size(self):
        group = ParallelTaskGroup()

        async def noop():
            return None

        group.enqueue(noop)
        group.enqueue(noop)

        assert group.size() == 2
        assert len(group) == 2

    @pytest.mark.asyncio
    async def test_run_all_empty(self):
        assert await ParallelTaskGroup().run_all() == []

    @pytest.mark.asyncio
    async def test_runs_concurrently_and_clears(self):
        group = ParallelTaskGroup()
        started = []
        release = asyncio.Event()

        def make(i):
            async def op():
                started.append(i)
                await release.wait()
                return i * 10
            return op

        for i in range(3):
            group.enqueue(make(i))

        runner = asyncio.create_task(group.run_all())
        await asyncio.sleep(0.01)
        # every operation is waiting at the same time
        assert sorted(started) == [0, 1, 2]
        release.set()

        assert await runner == [0, 10, 20]
        assert group.size() == 0

    @pytest.mark.asyncio
    async def test_group_is_reusable(self):
        group = ParallelTaskGroup()
        calls = []

        async def op():
            calls.append(1)

        group.enqueue(op)
        await group.run_all()
        group.enqueue(op)
        await group.run_all()

        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_fatal_error_aborts_wait(self):
        group = ParallelTaskGroup()
        finished = []

        async def ok():
            await asyncio.sleep(0.01)
            finished.append("ok")

        async def boom():
            raise RetryExhaustedError("bus.pushItems", 3, None)

        group.enqueue(ok)
        group.enqueue(boom)

        with pytest.raises(RetryExhaustedError):
            await group.run_all()

        assert group.size() == 0
        # already-started siblings still complete their side effects
        await asyncio.sleep(0.02)
        assert finished == ["ok"]
