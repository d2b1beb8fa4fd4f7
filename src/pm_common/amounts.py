"""Decimal arithmetic utilities for PXB amounts.

All pool amounts, balances and config parameters are Decimal. No float.
Rounding to cents happens only at output boundaries (records, results),
never in the middle of a calculation.
"""

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation

CENT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value: object) -> Decimal:
    """Coerce int/str/float/Decimal to Decimal. Floats go through str() to avoid binary noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        value = str(value)
    try:
        result = Decimal(value)  # type: ignore[arg-type]
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValueError(f"Not a decimal amount: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"Amount must be finite, got {value!r}")
    return result


def round_pxb(value: Decimal) -> Decimal:
    """Round half-up to 2 dp: Decimal('48.505') -> Decimal('48.51')."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def floor_pxb(value: Decimal) -> Decimal:
    """Truncate to 2 dp (the vault never pays out a rounded-up cent)."""
    return value.quantize(CENT, rounding=ROUND_DOWN)


def pxb_to_display(value: Decimal) -> str:
    """Format for messages: 1234.5 -> '1,234.50 PXB', -12 -> '-12.00 PXB'."""
    return f"{round_pxb(value):,.2f} PXB"
