"""ORM models for the commission kernel."""

from commission_kernel.models.affiliate import (
    AffiliateProduct,
    AffiliateProfile,
    AffiliateSale,
    ProfileType,
)
from commission_kernel.models.commission_ledger import CommissionLedgerEntry

__all__ = [
    "AffiliateProduct",
    "AffiliateProfile",
    "AffiliateSale",
    "ProfileType",
    "CommissionLedgerEntry",
]
