"""Decimal money utilities.

All amounts and balances are Decimal quantized to 2 places (single currency).
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from src.cl_common.errors import InvalidArgumentError

_CENT = Decimal("0.01")

ZERO = Decimal("0.00")


def to_money(value: Decimal | int | str) -> Decimal:
    """Coerce to a 2dp Decimal: '12.345' -> Decimal('12.35')."""
    try:
        return Decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise InvalidArgumentError(f"amount is not a number: {value!r}") from exc


def require_positive(amount: Decimal | int | str) -> Decimal:
    """Validate a transaction amount; returns it quantized."""
    money = to_money(amount)
    if money <= ZERO:
        raise InvalidArgumentError(f"amount must be positive, got {money}")
    return money


def money_to_display(amount: Decimal) -> str:
    """Decimal('6500') -> '$6,500.00', Decimal('-12') -> '-$12.00'."""
    money = to_money(amount)
    if money < 0:
        return f"-${-money:,.2f}"
    return f"${money:,.2f}"
