"""Sequence Tracker Tests"""

import asyncio
import gc
import threading
import time

import pytest

from replaywire.replay.sequence import FingerprintLocks, SequenceTracker


class TestSequenceTracker:
    def test_defaults_to_zero(self):
        tracker = SequenceTracker()
        assert tracker.current_index("a.json") == 0

    def test_advance(self):
        tracker = SequenceTracker()
        assert tracker.advance("a.json") == 1
        assert tracker.advance("a.json") == 2
        assert tracker.current_index("a.json") == 2
        assert tracker.current_index("b.json") == 0

    def test_reset(self):
        tracker = SequenceTracker()
        tracker.advance("a.json")
        tracker.advance("b.json")

        tracker.reset("a.json")
        assert tracker.snapshot() == {"b.json": 1}

        tracker.reset()
        assert tracker.snapshot() == {}

    def test_concurrent_advances_are_not_lost(self):
        tracker = SequenceTracker()

        def worker():
            for _ in range(500):
                tracker.advance("a.json")

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert tracker.current_index("a.json") == 4000


class TestFingerprintLocks:
    def test_same_key_same_lock(self):
        locks = FingerprintLocks()
        assert locks.sync_lock("a") is locks.sync_lock("a")
        assert locks.sync_lock("a") is not locks.sync_lock("b")

    def test_unused_locks_are_dropped(self):
        locks = FingerprintLocks()
        held = locks.sync_lock("a")
        locks.sync_lock("b")
        gc.collect()

        assert len(locks) == 1
        assert locks.sync_lock("a") is held

    @pytest.mark.asyncio
    async def test_async_locks(self):
        locks = FingerprintLocks()
        assert locks.async_lock("a") is locks.async_lock("a")
        assert locks.async_lock("a") is not locks.async_lock("b")

    def test_async_locks_are_per_event_loop(self):
        locks = FingerprintLocks()

        async def contended():
            lock = locks.async_lock("a")
            async with lock:
                waiter = asyncio.ensure_future(lock.acquire())
                await asyncio.sleep(0)
            await waiter
            lock.release()
            return lock

        first = asyncio.run(contended())
        second = asyncio.run(contended())
        assert first is not second

    @pytest.mark.asyncio
    async def test_hold_sync_lock_waits_off_loop(self):
        locks = FingerprintLocks()
        lock = locks.sync_lock("a")
        lock.acquire()

        task = asyncio.create_task(self._hold(locks, "a"))
        started = time.monotonic()
        for _ in range(5):
            await asyncio.sleep(0.01)
        assert time.monotonic() - started < 1
        assert not task.done()

        lock.release()
        await asyncio.wait_for(task, timeout=5)
        assert not lock.locked()

    @pytest.mark.asyncio
    async def test_cancelled_hold_releases_lock(self):
        locks = FingerprintLocks()
        lock = locks.sync_lock("a")
        lock.acquire()

        task = asyncio.create_task(self._hold(locks, "a"))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        lock.release()
        for _ in range(100):
            await asyncio.sleep(0.01)
            if lock.acquire(blocking=False):
                break
        else:
            pytest.fail("lock was never released after cancellation")
        lock.release()

    async def _hold(self, locks, key):
        async with locks.hold_sync_lock(key):
            pass
