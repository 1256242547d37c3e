import asyncio
from contextlib import asynccontextmanager


class KeyedLocks:
    """Un asyncio.Lock por clave; la clave se descarta cuando nadie la usa."""

    def __init__(self):
        self._locks = {}
        self._waiters = {}
        self._guard = asyncio.Lock()

    async def _forget(self, key):
        async with self._guard:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                self._locks.pop(key, None)
                self._waiters.pop(key, None)

    async def acquire(self, key):
        async with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = asyncio.Lock()
                self._locks[key] = lock
            self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            await lock.acquire()
        except asyncio.CancelledError:
            await self._forget(key)
            raise
        return lock

    async def release(self, key):
        self._locks[key].release()
        await self._forget(key)

    @asynccontextmanager
    async def hold(self, key):
        await self.acquire(key)
        try:
            yield
        finally:
            await self.release(key)
