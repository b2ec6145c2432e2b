"""
Domain layer -- pure commission logic with no I/O.

Nothing in this package imports SQLAlchemy or reads configuration.
"""

from commission_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from commission_kernel.domain.commission_formula import (
    compute_breakdown,
    generate_ledger_entries,
    validate_input,
)
from commission_kernel.domain.currency import CurrencyRegistry, round_amount
from commission_kernel.domain.dtos import (
    HOUSE_PAYEE_KEY,
    CommissionBreakdown,
    CommissionInput,
    CommissionResult,
    CommissionSnapshot,
    LedgerEntryDraft,
    LedgerEntryRecord,
    LedgerRole,
    PayeeStatement,
    ReplayMismatch,
    ReplayResult,
    SaleContext,
    StatementLine,
    SyncResult,
)
from commission_kernel.domain.sale_lifecycle import (
    SaleStatus,
    is_ledger_eligible,
    requires_retraction,
    validate_transition,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "compute_breakdown",
    "generate_ledger_entries",
    "validate_input",
    "CurrencyRegistry",
    "round_amount",
    "HOUSE_PAYEE_KEY",
    "CommissionBreakdown",
    "CommissionInput",
    "CommissionResult",
    "CommissionSnapshot",
    "LedgerEntryDraft",
    "LedgerEntryRecord",
    "LedgerRole",
    "PayeeStatement",
    "ReplayMismatch",
    "ReplayResult",
    "SaleContext",
    "StatementLine",
    "SyncResult",
    "SaleStatus",
    "is_ledger_eligible",
    "requires_retraction",
    "validate_transition",
]
