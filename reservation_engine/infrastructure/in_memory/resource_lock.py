import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager

from reservation_engine.application.interfaces.resource_lock import ResourceLock


class ResourceLockRegistry(ResourceLock):
    """
    One asyncio.Lock per resource id, shared by every request in the process.

    Across processes the database row lock taken by lock_for_update() is what
    serializes bookings; this registry keeps same-process requests from racing
    on backends without row locks (SQLite, in-memory).
    """

    def __init__(self) -> None:
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @asynccontextmanager
    async def hold(self, resource_id: str):
        async with self._locks[resource_id]:
            yield
