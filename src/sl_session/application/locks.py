"""Per-session mutual exclusion.

One asyncio.Lock per session id, shared by the session and staking services
so that a rebuy, a finalize and a stake edit on the same session never
interleave. Sessions are independent of each other.

A lock lives only while someone holds or waits for it, so ids that are never
seen again (deleted sessions, mistyped ids) do not pile up.

This only serializes within one process; across processes the repositories
take row locks (SELECT ... FOR UPDATE) inside the same transaction.
"""

import asyncio
from collections import defaultdict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class SessionLocks:
    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = defaultdict(int)  # holders + waiters

    @asynccontextmanager
    async def for_session(self, session_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        self._users[session_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._users[session_id] -= 1
            if self._users[session_id] == 0:
                del self._users[session_id]
                del self._locks[session_id]

    def __len__(self) -> int:
        return len(self._locks)


# Process-wide instance shared by the session and staking routers
session_locks = SessionLocks()
