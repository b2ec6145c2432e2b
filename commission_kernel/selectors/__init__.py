"""Read-only selectors over the commission ledger."""

from commission_kernel.selectors.ledger_selector import LedgerSelector
from commission_kernel.selectors.settlement_selector import SettlementAggregator

__all__ = ["LedgerSelector", "SettlementAggregator"]
