"""Kernel services -- the write side of the commission ledger."""

from commission_kernel.services.ledger_store import LedgerStore
from commission_kernel.services.ledger_synchronizer import LedgerSynchronizer
from commission_kernel.services.sale_locks import SaleLockRegistry, default_registry

__all__ = [
    "LedgerStore",
    "LedgerSynchronizer",
    "SaleLockRegistry",
    "default_registry",
]
