"""In-memory Unit of Work

Process-local storage for tests and single-process tooling. Writes are
applied to the shared store immediately and undone on rollback; locks
taken through the unit of work are held until commit or rollback, which
gives the same serialization as row locks in the database.
"""

import asyncio
from typing import Callable, Dict, Hashable, List, Set, Tuple

from src.app.repositories.fiscal_chain_repository import ChainHead
from src.app.services.unit_of_work import UnitOfWork
from src.domain.errors import LockTimeoutError
from src.domain.invoice import Invoice


class InMemoryStore:
    """State shared by every unit of work of one process"""

    def __init__(self):
        self.invoices: Dict[str, Invoice] = {}
        self.counters: Dict[Tuple[str, str, int], int] = {}
        self.chains: Dict[str, ChainHead] = {}
        self._locks: Dict[Hashable, asyncio.Lock] = {}

    def lock_for(self, key: Hashable) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock


class InMemoryUnitOfWork(UnitOfWork):
    def __init__(self, store: InMemoryStore, lock_timeout_seconds: float = 5.0):
        self.store = store
        self.lock_timeout_seconds = lock_timeout_seconds
        self._undo: List[Callable[[], None]] = []
        self._held: List[asyncio.Lock] = []
        self._held_keys: Set[Hashable] = set()

    async def acquire(self, key: Hashable, timeout: float = None) -> None:
        """Lock key until the transaction ends (re-entrant within this unit of work)"""
        if key in self._held_keys:
            return
        lock = self.store.lock_for(key)
        try:
            await asyncio.wait_for(lock.acquire(), timeout or self.lock_timeout_seconds)
        except asyncio.TimeoutError:
            raise LockTimeoutError(f"Lock on {key!r} not obtained in time")
        self._held.append(lock)
        self._held_keys.add(key)

    def record_undo(self, undo: Callable[[], None]) -> None:
        self._undo.append(undo)

    def _release(self) -> None:
        for lock in reversed(self._held):
            lock.release()
        self._held.clear()
        self._held_keys.clear()

    async def commit(self):
        self._undo.clear()
        self._release()

    async def rollback(self):
        for undo in reversed(self._undo):
            undo()
        self._undo.clear()
        self._release()
