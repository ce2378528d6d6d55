"""Sequence tracking

Per-chain counters deciding which recorded exchange is served (or
appended) next for repeated identical requests.
"""

import asyncio
import threading
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional


class SequenceTracker:
    """Counter per chain file name, starting at 0.

    The tracker knows nothing about chain lengths; wrapping the index into
    a loaded chain is the chain store's job. Counters live in memory only.
    """

    def __init__(self):
        self._counters: dict[str, int] = {}
        self._lock = threading.Lock()

    def current_index(self, key: str) -> int:
        with self._lock:
            return self._counters.get(key, 0)

    def advance(self, key: str) -> int:
        """Increment the counter for ``key`` and return the new value."""
        with self._lock:
            value = self._counters.get(key, 0) + 1
            self._counters[key] = value
            return value

    def reset(self, key: Optional[str] = None) -> None:
        """Forget one counter, or all of them."""
        with self._lock:
            if key is None:
                self._counters.clear()
            else:
                self._counters.pop(key, None)

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return dict(self._counters)



class FingerprintLocks:
    """Per-key locks serialising work on the same chain.

    Holding the lock for a key across "read index, resolve, advance" (or
    "call network, append, advance") keeps two concurrent identical
    requests from consuming the same chain slot. A lock is dropped once
    nobody holds a reference to it, and asyncio locks are kept per event
    loop since one can only be awaited from the loop it was bound to.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._thread_locks: "weakref.WeakValueDictionary[str, threading.Lock]" = (
            weakref.WeakValueDictionary()
        )
        # loop -> {key: asyncio.Lock}
        self._async_locks = weakref.WeakKeyDictionary()

    def __len__(self) -> int:
        """Number of thread locks currently alive."""
        with self._guard:
            return len(self._thread_locks)

    def sync_lock(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._thread_locks.get(key)
            if lock is None:
                lock = self._thread_locks[key] = threading.Lock()
            return lock

    def async_lock(self, key: str) -> asyncio.Lock:
        """Lock for ``key`` on the running event loop."""
        loop = asyncio.get_running_loop()
        with self._guard:
            locks = self._async_locks.get(loop)
            if locks is None:
                locks = self._async_locks[loop] = weakref.WeakValueDictionary()
            lock = locks.get(key)
            if lock is None:
                lock = locks[key] = asyncio.Lock()
            return lock

    @asynccontextmanager
    async def hold_sync_lock(self, key: str) -> AsyncIterator[None]:
        """Hold the thread lock for ``key`` from a coroutine.

        A contended acquire waits in a worker thread so the event loop keeps
        running. If the waiting coroutine is cancelled, the lock is released
        as soon as the worker gets it.
        """
        lock = self.sync_lock(key)
        if not lock.acquire(blocking=False):
            waiter = asyncio.ensure_future(asyncio.to_thread(lock.acquire))
            try:
                await asyncio.shield(waiter)
            except asyncio.CancelledError:
                waiter.add_done_callback(lambda _: lock.release())
                raise
        try:
            yield
        finally:
            lock.release()
