"""Unit tests for money helpers."""

from __future__ import annotations

from decimal import Decimal

import pytest

from app.core.exceptions import ValidationError
from app.core.money import (
    calculate_with_decimal,
    convert_currency,
    format_currency,
    quantize_amount,
    split_installments,
    sum_amounts,
    to_decimal,
)


class TestToDecimal:
    def test_none_is_zero(self):
        assert to_decimal(None) == Decimal("0")

    def test_float_keeps_its_decimal_form(self):
        assert to_decimal(0.1) == Decimal("0.1")

    def test_string_amount(self):
        assert to_decimal(" 12.50 ") == Decimal("12.50")

    @pytest.mark.parametrize("value", ["abc", "NaN", "Infinity"])
    def test_invalid_values_raise(self, value):
        with pytest.raises(ValidationError):
            to_decimal(value)


class TestCalculateWithDecimal:
    def test_add_is_exact(self):
        assert calculate_with_decimal("add", "0.1", "0.2") == "0.3"

    def test_subtract(self):
        assert calculate_with_decimal("subtract", "10", "2.5") == "7.5"

    def test_multiply(self):
        assert calculate_with_decimal("multiply", "100", "1.5") == "150.0"

    def test_divide(self):
        assert Decimal(calculate_with_decimal("divide", "10", "4")) == Decimal("2.5")

    def test_divide_by_zero_raises(self):
        with pytest.raises(ValidationError):
            calculate_with_decimal("divide", "10", "0")

    def test_unknown_operation_returns_zero(self):
        assert calculate_with_decimal("modulo", "10", "3") == "0"

    def test_convert_currency(self):
        assert Decimal(convert_currency("25.50", "1000")) == Decimal("25500")


class TestFormatCurrency:
    def test_grouping_and_symbol(self):
        assert format_currency("1234.5", "USD") == "$1,234.50"

    def test_negative_amount(self):
        assert format_currency("-5", "USD") == "-$5.00"

    def test_multi_character_symbol(self):
        assert format_currency(10, "BRL") == "R$10.00"

    def test_unknown_currency_uses_code(self):
        assert format_currency(1, "XYZ") == "XYZ1.00"


class TestQuantize:
    def test_fiat_rounds_half_up_to_cents(self):
        assert quantize_amount("2.675", "USD") == Decimal("2.68")

    def test_crypto_keeps_eight_places(self):
        assert quantize_amount("0.123456789", "BTC") == Decimal("0.12345679")


class TestSplitInstallments:
    def test_even_split(self):
        assert split_installments("60000", 6, "ARS") == [Decimal("10000.00")] * 6

    def test_last_installment_absorbs_remainder(self):
        amounts = split_installments("100", 3, "USD")
        assert amounts == [Decimal("33.33"), Decimal("33.33"), Decimal("33.34")]
        assert sum(amounts) == Decimal("100")

    @pytest.mark.parametrize(
        ("total", "count", "currency"),
        [("0.05", 7, "USD"), ("0.35", 40, "USD"), ("200", 3, "USD"), ("0.00000005", 3, "BTC")],
    )
    def test_share_rounding_never_yields_negative_installments(self, total, count, currency):
        amounts = split_installments(total, count, currency)
        assert len(amounts) == count
        assert all(amount >= 0 for amount in amounts)
        assert sum(amounts) == Decimal(total)

    def test_small_total_lands_on_last_installment(self):
        assert split_installments("0.05", 7, "USD") == [Decimal("0.00")] * 6 + [Decimal("0.05")]

    def test_count_below_one_raises(self):
        with pytest.raises(ValidationError):
            split_installments("100", 0)


def test_sum_amounts_mixes_strings_and_numbers():
    assert sum_amounts(["0.1", 0.2, Decimal("0.3"), None]) == Decimal("0.6")
