"""
Per-sale lock registry.

Same-sale ledger operations inside one process serialize on a lock keyed by
sale id.  Across processes the row lock taken when the sale is loaded does
the same job on PostgreSQL; on SQLite, which has no row locks, this registry
is the only serialization.

Locks are reference counted and dropped once no thread holds or waits on
them, so the registry does not grow with the number of sales ever synced.
"""

import threading
from contextlib import contextmanager
from typing import Generator
from uuid import UUID

from commission_kernel.logging_config import get_logger

logger = get_logger("services.sale_locks")


class _Entry:
    __slots__ = ("lock", "refs")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.refs = 0


class SaleLockRegistry:
    """Mutex per sale id.  Different sales never block each other."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[UUID, _Entry] = {}

    @contextmanager
    def hold(self, sale_id: UUID) -> Generator[None, None, None]:
        with self._guard:
            entry = self._entries.get(sale_id)
            if entry is None:
                entry = _Entry()
                self._entries[sale_id] = entry
            entry.refs += 1

        if not entry.lock.acquire(blocking=False):
            logger.debug("sale_lock_waiting", extra={"sale_id": str(sale_id)})
            entry.lock.acquire()

        try:
            yield
        finally:
            entry.lock.release()
            with self._guard:
                entry.refs -= 1
                if entry.refs == 0:
                    del self._entries[sale_id]

    def active_count(self) -> int:
        """Number of sales currently held or waited on."""
        with self._guard:
            return len(self._entries)


_default_registry = SaleLockRegistry()


def default_registry() -> SaleLockRegistry:
    """Process-wide registry shared by synchronizers that are not given one."""
    return _default_registry
