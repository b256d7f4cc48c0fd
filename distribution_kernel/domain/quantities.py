"""
Quantity and money helpers.

No floats for quantities or money: both are Decimal end to end, and
round_money() is the only sanctioned rounding function for monetary
values.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_quantity(value: Decimal | int | str) -> Decimal:
    """
    Coerce a caller-supplied quantity to Decimal.

    Floats are rejected: binary floating point cannot represent most
    decimal quantities exactly.

    Raises:
        TypeError: If value is a float or bool.
        ValueError: If value is not a finite number.
    """
    if isinstance(value, (bool, float)):
        raise TypeError(f"quantity must be Decimal, int or str, not {type(value).__name__}")
    try:
        result = value if isinstance(value, Decimal) else Decimal(value)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"not a number: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"not a finite number: {value!r}")
    return result


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the given number of decimal places.

    Args:
        value: The Decimal value to round.
        decimal_places: Number of decimal places to keep.
        rounding: Rounding mode (default: ROUND_HALF_UP).
    """
    quantize_str = "0." + "0" * decimal_places if decimal_places > 0 else "1"
    return value.quantize(Decimal(quantize_str), rounding=rounding)
