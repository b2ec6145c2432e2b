"""
Commission settings schema.

The human-authored settings file is parsed into these frozen types by the
loader.  The ledger synchronizer receives a ``CommissionSettings`` at
construction; nothing in the kernel reads the file itself.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class MissingCurrencyPolicy(str, Enum):
    """What to do when a sale's product carries no currency."""

    FAIL = "fail"
    DEFAULT = "default"


@dataclass(frozen=True)
class CommissionSettings:
    """Policy defaults for ledger generation."""

    config_id: str = "default"
    version: int = 1
    # Percentage applied when a profile has no withholding rate of its own
    default_withholding_rate: Decimal = Decimal("3.3")
    default_currency: str = "KRW"
    on_missing_currency: MissingCurrencyPolicy = MissingCurrencyPolicy.FAIL
    include_hq_default: bool = True
    database_url: str | None = None
    checksum: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.default_withholding_rate, Decimal):
            raise ValueError(
                "default_withholding_rate must be a Decimal, "
                f"got {type(self.default_withholding_rate).__name__}"
            )
        if not Decimal("0") <= self.default_withholding_rate <= Decimal("100"):
            raise ValueError(
                "default_withholding_rate must be between 0 and 100, "
                f"got {self.default_withholding_rate}"
            )
        if len(self.default_currency) != 3 or not self.default_currency.isupper():
            raise ValueError(
                f"default_currency must be a 3-letter ISO 4217 code, got {self.default_currency!r}"
            )
