"""Tests for currency precision lookup and entry-level rounding."""

from decimal import ROUND_DOWN, Decimal

import pytest

from commission_kernel.domain.currency import CurrencyRegistry, quantum, round_amount


class TestCurrencyRegistry:
    def test_zero_decimal_currencies(self):
        for code in ("KRW", "JPY", "VND"):
            assert CurrencyRegistry.get_decimal_places(code) == 0

    def test_two_and_three_decimal_currencies(self):
        assert CurrencyRegistry.get_decimal_places("USD") == 2
        assert CurrencyRegistry.get_decimal_places("KWD") == 3

    def test_unknown_currency_has_no_precision(self):
        with pytest.raises(ValueError, match="Unsupported"):
            CurrencyRegistry.get_decimal_places("XYZ")

    def test_lookup_is_case_and_whitespace_insensitive(self):
        assert CurrencyRegistry.validate(" krw ") == "KRW"
        assert CurrencyRegistry.get_decimal_places("usd") == 2

    def test_validate_rejects_unknown_and_empty(self):
        with pytest.raises(ValueError, match="Unsupported"):
            CurrencyRegistry.validate("ABC")
        with pytest.raises(ValueError, match="Invalid currency code"):
            CurrencyRegistry.validate("")


class TestRounding:
    def test_half_up_at_zero_places(self):
        assert round_amount(Decimal("407.5"), 0) == Decimal("408")
        assert round_amount(Decimal("407.385"), 0) == Decimal("407")

    def test_half_up_at_two_places(self):
        assert round_amount(Decimal("0.125"), 2) == Decimal("0.13")
        assert round_amount(Decimal("0.33165"), 2) == Decimal("0.33")

    def test_negative_values_round_away_from_zero_on_half(self):
        assert round_amount(Decimal("-10.5"), 0) == Decimal("-11")

    def test_explicit_rounding_mode(self):
        assert round_amount(Decimal("1.999"), 2, rounding=ROUND_DOWN) == Decimal("1.99")

    def test_negative_precision_rejected(self):
        with pytest.raises(ValueError, match="decimal_places"):
            quantum(-1)
