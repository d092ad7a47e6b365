"""
Exact decimal money helpers.

Amounts are ``decimal.Decimal`` throughout the core. Intermediate results
stay exact; ``quantize`` is applied only where an amount is persisted or
serialized, always to two places with half-up rounding.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

from pos_core.core.exceptions import ValidationError

AmountLike = Union[Decimal, int, str]

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")
ROUNDING = ROUND_HALF_UP


def to_decimal(value: Optional[AmountLike], field: str = "amount") -> Decimal:
    """
    Convert caller input into an exact Decimal.

    Args:
        value: Decimal, integer or numeric string; None is treated as zero
        field: Field name used in the error message

    Returns:
        Exact decimal value

    Raises:
        ValidationError: If the value is a float, not numeric or not finite
    """
    if value is None:
        return ZERO
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(f"{field} must be a decimal amount", value=value)
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValidationError(f"{field} is not a valid amount", value=value) from None
    if not result.is_finite():
        raise ValidationError(f"{field} is not a valid amount", value=value)
    return result


def quantize(amount: Optional[Decimal]) -> Decimal:
    """Round to two fractional digits, half-up. None becomes 0.00."""
    if amount is None:
        return ZERO.quantize(CENT)
    return amount.quantize(CENT, rounding=ROUNDING)


def require_cents(amount: Decimal, field: str = "amount") -> Decimal:
    """
    Refuse amounts that cannot be stored without rounding.

    Raises:
        ValidationError: If the amount has more than two fractional digits
    """
    if quantize(amount) != amount:
        raise ValidationError(
            f"{field} must have at most 2 decimal places", value=str(amount)
        )
    return amount


def format_money(amount: Optional[Decimal]) -> str:
    """
    Canonical string form of an amount.

    Example:
        >>> format_money(Decimal("12500"))
        '12500.00'
        >>> format_money(None)
        '0.00'
    """
    return f"{quantize(amount):.2f}"


def add(*amounts: Optional[Decimal]) -> Decimal:
    total = ZERO
    for amount in amounts:
        if amount is not None:
            total += amount
    return total


def subtract(amount: Decimal, other: Optional[Decimal]) -> Decimal:
    return amount - (other or ZERO)


def multiply(amount: Decimal, quantity: int) -> Decimal:
    """Multiply an amount by an integer quantity."""
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("quantity must be an integer", quantity=quantity)
    return amount * quantity


def percentage_of(amount: Decimal, percent: Decimal) -> Decimal:
    """Exact ``amount × percent ÷ 100``."""
    return amount * percent / HUNDRED
