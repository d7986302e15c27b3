from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Protocol


class ResourceLock(Protocol):
    """Exclusive lock per resource, held for the duration of one booking decision."""

    @asynccontextmanager
    async def hold(self, resource_id: str) -> AsyncIterator[None]:
        yield
