"""
Money arithmetic helpers.

All ledger amounts are decimal.Decimal. Floats never enter a computation:
database drivers that hand back floats (SQLite) or ints are normalised
through to_decimal() before any arithmetic happens.
"""

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

# Credited amounts are truncated once, at the point of credit, to 4 places.
# Truncation keeps every per-level reward at or below base x rate, so a
# chain never pays more than base x the summed rates.
MONEY_QUANT = Decimal("0.0001")
ZERO = Decimal("0")


def to_decimal(value: Any, default: Decimal = ZERO) -> Decimal:
    """
    Convert a stored or user supplied value to Decimal.

    Floats are converted through their string form so that 0.1 becomes
    Decimal("0.1") rather than its binary expansion.

    Args:
        value: Decimal, int, float, str or None
        default: Value returned for None

    Returns:
        Decimal value

    Raises:
        ValueError: If the value is not a finite number
    """
    if value is None:
        return default
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        result = Decimal(repr(value))
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise ValueError(f"Invalid money value: {value!r}") from e

    if not result.is_finite():
        raise ValueError(f"Invalid money value: {value!r}")
    return result


def quantize_money(amount: Decimal) -> Decimal:
    """Truncate to MONEY_QUANT (toward zero)."""
    return to_decimal(amount).quantize(MONEY_QUANT, rounding=ROUND_DOWN)


def multiply_rate(base: Decimal, rate: Decimal) -> Decimal:
    """
    Apply a rate to a base amount.

    Exact multiplication followed by a single truncation step.

    Args:
        base: Base amount
        rate: Fractional rate (0.30 = 30%)

    Returns:
        Truncated product
    """
    return quantize_money(to_decimal(base) * to_decimal(rate))


def within_epsilon(a: Decimal, b: Decimal, epsilon: Decimal) -> bool:
    """Check that two amounts differ by no more than epsilon."""
    return abs(to_decimal(a) - to_decimal(b)) <= to_decimal(epsilon)


def format_money(amount: Decimal, places: int = 4) -> str:
    """Format amount for log lines."""
    quant = Decimal(1).scaleb(-places)
    return str(to_decimal(amount).quantize(quant, rounding=ROUND_HALF_UP))
