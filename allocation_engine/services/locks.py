"""
Per-allocation exclusive locks.

Distribution replaces an allocation's whole line set and utilization refresh
rewrites the same rows, so mutations of one allocation must not interleave.
The registry hands out one ``asyncio.Lock`` per allocation id. Reads take no
lock.

An entry lives only while some task holds or waits for it; the last task out
removes it, so ids that were touched once (or never existed) do not stay in
the map.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Hashable

from allocation_engine.core.logging import logger


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.users = 0


class AllocationLockRegistry:
    def __init__(self) -> None:
        self._entries: Dict[Hashable, _Entry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def is_held(self, allocation_id: Hashable) -> bool:
        entry = self._entries.get(allocation_id)
        return bool(entry and entry.lock.locked())

    @asynccontextmanager
    async def hold(self, allocation_id: Hashable) -> AsyncIterator[None]:
        entry = self._entries.get(allocation_id)
        if entry is None:
            entry = self._entries[allocation_id] = _Entry()
        entry.users += 1
        try:
            if entry.lock.locked():
                logger.debug(f"Waiting for exclusive access to allocation {allocation_id}")
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._entries[allocation_id]


allocation_locks = AllocationLockRegistry()
