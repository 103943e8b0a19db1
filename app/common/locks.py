"""
Per-entity exclusive scopes for read-modify-write sequences on ledger aggregates.
"""
from contextlib import contextmanager
from threading import Lock, RLock
from typing import Iterator, Tuple
from weakref import WeakValueDictionary

EntityKey = Tuple[str, str]


class EntityLocks:
    """Registry of one re-entrant lock per (kind, id).

    Locks are re-entrant so an engine can take the scope again while a caller
    (e.g. the sale workflow) already holds it across check and commit.

    The registry only keeps weak references: a lock lives while some thread
    holds or waits on it and is dropped afterwards, so ids seen once
    (invoices, deleted products) do not accumulate.
    """

    def __init__(self):
        self._guard = Lock()  # Protects the registry itself
        self._locks: "WeakValueDictionary[EntityKey, RLock]" = WeakValueDictionary()

    def _lock_for(self, key: EntityKey) -> RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, *keys: EntityKey) -> Iterator[None]:
        """Acquire every key in sorted order, release in reverse."""
        ordered = sorted(set(keys))
        # Strong references keep the registry entries alive for the whole scope
        locks = [self._lock_for(key) for key in ordered]
        acquired = []
        try:
            for lock in locks:
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()

    def customer(self, customer_id: str):
        return self.hold(("customer", customer_id))

    def product(self, product_id: str):
        return self.hold(("product", product_id))

    def invoice(self, invoice_id: str):
        return self.hold(("invoice", invoice_id))

    def __contains__(self, key: EntityKey) -> bool:
        with self._guard:
            return self._locks.get(key) is not None

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
