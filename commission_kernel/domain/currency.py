"""Currency -- ISO 4217 precision lookup and entry-level rounding."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import ClassVar


@dataclass(frozen=True)
class CurrencyInfo:
    """Information about a single ISO 4217 currency."""

    code: str
    decimal_places: int
    name: str


def quantum(decimal_places: int) -> Decimal:
    """Decimal exponent used by ``quantize`` for the given precision."""
    if decimal_places < 0:
        raise ValueError(f"decimal_places must be >= 0, got {decimal_places}")
    return Decimal(1).scaleb(-decimal_places)


def round_amount(
    value: Decimal,
    decimal_places: int,
    rounding: str = ROUND_HALF_UP,
) -> Decimal:
    """
    Round a monetary value to a currency precision.

    The only sanctioned rounding function for ledger amounts.  Half-up:
    3.3% withholding on 12,345 KRW (407.385) books as 407.
    """
    return value.quantize(quantum(decimal_places), rounding=rounding)


class CurrencyRegistry:
    """Decimal places for the currencies affiliate products are sold in."""

    _CURRENCIES: ClassVar[dict[str, CurrencyInfo]] = {
        # Zero decimal
        "KRW": CurrencyInfo("KRW", 0, "South Korean Won"),
        "JPY": CurrencyInfo("JPY", 0, "Japanese Yen"),
        "VND": CurrencyInfo("VND", 0, "Vietnamese Dong"),
        "CLP": CurrencyInfo("CLP", 0, "Chilean Peso"),
        "ISK": CurrencyInfo("ISK", 0, "Icelandic Krona"),
        "XPF": CurrencyInfo("XPF", 0, "CFP Franc"),
        # Two decimal
        "USD": CurrencyInfo("USD", 2, "US Dollar"),
        "EUR": CurrencyInfo("EUR", 2, "Euro"),
        "GBP": CurrencyInfo("GBP", 2, "Pound Sterling"),
        "CHF": CurrencyInfo("CHF", 2, "Swiss Franc"),
        "CAD": CurrencyInfo("CAD", 2, "Canadian Dollar"),
        "AUD": CurrencyInfo("AUD", 2, "Australian Dollar"),
        "NZD": CurrencyInfo("NZD", 2, "New Zealand Dollar"),
        "CNY": CurrencyInfo("CNY", 2, "Chinese Yuan"),
        "HKD": CurrencyInfo("HKD", 2, "Hong Kong Dollar"),
        "TWD": CurrencyInfo("TWD", 2, "New Taiwan Dollar"),
        "SGD": CurrencyInfo("SGD", 2, "Singapore Dollar"),
        "THB": CurrencyInfo("THB", 2, "Thai Baht"),
        "PHP": CurrencyInfo("PHP", 2, "Philippine Peso"),
        "MYR": CurrencyInfo("MYR", 2, "Malaysian Ringgit"),
        "IDR": CurrencyInfo("IDR", 2, "Indonesian Rupiah"),
        "AED": CurrencyInfo("AED", 2, "UAE Dirham"),
        "TRY": CurrencyInfo("TRY", 2, "Turkish Lira"),
        "NOK": CurrencyInfo("NOK", 2, "Norwegian Krone"),
        "SEK": CurrencyInfo("SEK", 2, "Swedish Krona"),
        "DKK": CurrencyInfo("DKK", 2, "Danish Krone"),
        "MXN": CurrencyInfo("MXN", 2, "Mexican Peso"),
        # Three decimal
        "BHD": CurrencyInfo("BHD", 3, "Bahraini Dinar"),
        "JOD": CurrencyInfo("JOD", 3, "Jordanian Dinar"),
        "KWD": CurrencyInfo("KWD", 3, "Kuwaiti Dinar"),
        "OMR": CurrencyInfo("OMR", 3, "Omani Rial"),
        "TND": CurrencyInfo("TND", 3, "Tunisian Dinar"),
    }

    @classmethod
    def validate(cls, code: str) -> str:
        """Validate and normalize a currency code."""
        if not code or not isinstance(code, str):
            raise ValueError(f"Invalid currency code: {code!r}")

        normalized = code.upper().strip()
        if normalized not in cls._CURRENCIES:
            raise ValueError(f"Unsupported ISO 4217 currency code: {code!r}")
        return normalized

    @classmethod
    def get_decimal_places(cls, code: str) -> int:
        """
        Precision of a supported currency.

        Raises:
            ValueError: If the code is not a supported ISO 4217 currency.
        """
        return cls._CURRENCIES[cls.validate(code)].decimal_places

