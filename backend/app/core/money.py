"""
Money helpers for FinTrack.

Every amount that is summed, converted or split goes through ``Decimal``.
Amounts are persisted as decimal strings because Firestore only stores
binary floats.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from app.core.constants import CRYPTO_CURRENCIES, CURRENCY_SYMBOLS
from app.core.exceptions import ValidationError

ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    """Convert a stored or submitted amount to ``Decimal``.

    None becomes zero. Floats go through ``str`` so ``0.1`` stays ``0.1``.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValidationError(f"Invalid amount: {value!r}")
    if not result.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}")
    return result


def to_storage(value: Any) -> str:
    """Serialize an amount for a Firestore document."""
    return str(to_decimal(value))


def calculate_with_decimal(operation: str, a: Any, b: Any) -> str:
    """Apply ``operation`` (add/subtract/multiply/divide) to two amounts.

    Returns the result as a string; an unknown operation yields ``"0"``.
    """
    left = to_decimal(a)
    right = to_decimal(b)

    if operation == "add":
        return str(left + right)
    if operation == "subtract":
        return str(left - right)
    if operation == "multiply":
        return str(left * right)
    if operation == "divide":
        if right == ZERO:
            raise ValidationError("Cannot divide by zero")
        return str(left / right)
    return "0"


def convert_currency(amount: Any, rate: Any) -> str:
    return calculate_with_decimal("multiply", amount, rate)


def currency_exponent(currency: str) -> int:
    """Number of decimal places kept for a currency."""
    return 8 if currency in CRYPTO_CURRENCIES else 2


def quantize_amount(amount: Any, currency: str) -> Decimal:
    exponent = Decimal(1).scaleb(-currency_exponent(currency))
    return to_decimal(amount).quantize(exponent, rounding=ROUND_HALF_UP)


def format_currency(amount: Any, currency: str = "USD") -> str:
    """Format an amount as ``<symbol><grouped amount>`` with two decimals.

    Examples: ``$1,234.50``, ``R$10.00``, ``-$5.00``. Unknown currency codes are
    used as their own symbol.
    """
    value = to_decimal(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    symbol = CURRENCY_SYMBOLS.get(currency, currency)
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"


def split_installments(total: Any, count: int, currency: str = "USD") -> list[Decimal]:
    """Split ``total`` into ``count`` installment amounts that sum exactly to it.

    Each installment is ``total / count`` truncated to the currency's precision;
    the last one absorbs the remainder, so no installment is ever negative.
    """
    if count < 1:
        raise ValidationError("Installment count must be at least 1")

    total_value = quantize_amount(total, currency)
    exponent = Decimal(1).scaleb(-currency_exponent(currency))
    share = (total_value / count).quantize(exponent, rounding=ROUND_DOWN)
    amounts = [share] * (count - 1)
    amounts.append(total_value - share * (count - 1))
    return amounts


def sum_amounts(values: list[Any]) -> Decimal:
    return sum((to_decimal(v) for v in values), ZERO)
