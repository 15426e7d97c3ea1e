"""
Mutual-exclusion gate for swap submission.

Serializes actions that spend from the same (wallet, network, asset) so
two swaps never race each other on nonces or balances.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Dict, NamedTuple, Optional, TypeVar

T = TypeVar("T")


class GateKey(NamedTuple):
    """Identifies the funds an action spends from."""

    wallet_id: str
    network: str
    asset: str


@dataclass
class _LockEntry:
    lock: asyncio.Lock
    users: int = 0  # holders + waiters


class ExclusiveAccessGate:
    """
    Per-key asyncio locks.

    Entries are reference counted and dropped once no holder or waiter
    remains, so the registry only holds keys that are in use.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._entries: Dict[GateKey, _LockEntry] = {}
        self.logger = logger or logging.getLogger(__name__)

    def __len__(self) -> int:
        return len(self._entries)

    def is_locked(self, key: GateKey) -> bool:
        entry = self._entries.get(key)
        return bool(entry and entry.lock.locked())

    @asynccontextmanager
    async def exclusive(self, key: GateKey) -> AsyncIterator[None]:
        """Hold the lock for ``key`` for the duration of the block."""
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _LockEntry(lock=asyncio.Lock())
        entry.users += 1
        try:
            if entry.lock.locked():
                self.logger.debug("Waiting for gate %s", key)
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0 and self._entries.get(key) is entry:
                del self._entries[key]

    async def with_exclusive_access(self, key: GateKey, action: Callable[[], Awaitable[T]]) -> T:
        """Run ``action`` while holding the lock for ``key``; errors release and propagate."""
        async with self.exclusive(key):
            return await action()
