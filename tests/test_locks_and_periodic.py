"""Tests for keyed locks, periodic tasks and service wiring."""
import asyncio
import pytest

from services.locks import KeyedLocks
from services.periodic import PeriodicTask


@pytest.mark.unit
class TestKeyedLocks:
    """Test per-key locking."""

    async def test_same_key_serializes(self):
        locks = KeyedLocks()
        order = []

        async def worker(name):
            async with locks.hold("table-1"):
                order.append(f"{name}-in")
                await asyncio.sleep(0.01)
                order.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))

        assert order == ["a-in", "a-out", "b-in", "b-out"]

    async def test_different_keys_run_concurrently(self):
        locks = KeyedLocks()

        async with locks.hold("table-1"):
            async with locks.hold("table-2"):
                assert locks.locked("table-1")
                assert locks.locked("table-2")

        assert not locks.locked("table-1")
        assert not locks.locked("table-2")

    async def test_multi_key_hold_in_any_order(self):
        locks = KeyedLocks()

        async def move(first, second):
            async with locks.hold(first, second):
                await asyncio.sleep(0.01)

        await asyncio.wait_for(asyncio.gather(move("t1", "t2"), move("t2", "t1")), timeout=1)

    async def test_duplicate_and_missing_keys(self):
        locks = KeyedLocks()

        async with locks.hold("t1", "t1", None):
            assert locks.locked("t1")

        assert not locks.locked("t1")

    async def test_released_after_error(self):
        locks = KeyedLocks()

        with pytest.raises(RuntimeError):
            async with locks.hold("t1"):
                raise RuntimeError("boom")

        assert not locks.locked("t1")


    async def test_registry_empties_after_release(self):
        locks = KeyedLocks()

        for n in range(50):
            async with locks.hold(f"booking-{n}"):
                assert len(locks) == 1

        assert len(locks) == 0

    async def test_waiter_keeps_lock_registered(self):
        locks = KeyedLocks()
        entered = []

        async def waiter():
            async with locks.hold("t1"):
                entered.append("t1")

        async with locks.hold("t1"):
            task = asyncio.create_task(waiter())
            await asyncio.sleep(0)
            assert locks.users("t1") == 2

        await task
        assert entered == ["t1"]
        assert len(locks) == 0

    async def test_cancelled_waiter_released(self):
        locks = KeyedLocks()

        async def waiter():
            async with locks.hold("t1"):
                pass

        async with locks.hold("t1"):
            task = asyncio.create_task(waiter())
            await asyncio.sleep(0)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task
            assert locks.users("t1") == 1

        assert len(locks) == 0


@pytest.mark.unit
class TestPeriodicTask:
    """Test the background loop runner."""

    async def test_run_once_returns_job_result(self):
        async def job():
            return 3

        assert await PeriodicTask("job", 60, job).run_once() == 3

    async def test_run_once_swallows_failures(self):
        async def job():
            raise RuntimeError("storage unavailable")

        assert await PeriodicTask("failing", 60, job).run_once() is None

    async def test_loop_keeps_running_after_failure(self):
        calls = []

        async def job():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("first run fails")

        task = PeriodicTask("flaky", 0.01, job)
        task.start()
        await asyncio.sleep(0.1)
        await task.stop()

        assert len(calls) >= 2
        assert task.running is False

    async def test_stop_prevents_further_runs(self):
        calls = []

        async def job():
            calls.append(1)

        task = PeriodicTask("counter", 0.01, job)
        task.start()
        assert task.running is True
        await asyncio.sleep(0.05)
        await task.stop()
        seen = len(calls)
        await asyncio.sleep(0.05)

        assert len(calls) == seen

    async def test_stop_without_start(self):
        async def job():
            return None

        await PeriodicTask("idle", 1, job).stop()


@pytest.mark.integration
class TestServiceTasks:
    """Test the background loops wired by the registry."""

    async def test_three_loops_built(self, services):
        tasks = services.build_tasks(reconcile_interval_seconds=300, notification_interval_seconds=60)

        assert [t.name for t in tasks] == ["reconciliation", "upcoming-bookings", "long-waiting"]
        assert [t.interval_seconds for t in tasks] == [300, 60, 60]

    async def test_start_and_stop(self, services):
        services.build_tasks(reconcile_interval_seconds=30, notification_interval_seconds=30)

        services.start_tasks()
        assert all(t.running for t in services.tasks)

        await services.stop_tasks()
        assert not any(t.running for t in services.tasks)
