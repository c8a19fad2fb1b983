"""Unit conversion between smallest on-chain units and display units."""
from __future__ import annotations

from decimal import Decimal, InvalidOperation

from .errors import ValidationError

LAMPORTS_PER_SOL = 1_000_000_000
MIST_PER_SUI = 1_000_000_000


def parse_raw_amount(raw_amount: str) -> int:
    """Parse a non-negative integer smallest-unit string."""
    try:
        raw = int(raw_amount)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Not an integer amount: {raw_amount!r}") from e
    if raw < 0:
        raise ValidationError(f"Negative balance: {raw_amount!r}")
    return raw


def to_display_units(raw_amount: str, decimals: int) -> str:
    """Convert an integer smallest-unit string into a plain decimal string.

    >>> to_display_units("1500000000", 9)
    '1.5'
    """
    value = Decimal(parse_raw_amount(raw_amount)).scaleb(-decimals)
    return format_decimal(value)


def divide_by_unit(raw_amount: str, unit: int) -> str:
    """Convert using a fixed per-unit divisor (lamports, mist)."""
    return format_decimal(Decimal(parse_raw_amount(raw_amount)) / Decimal(unit))


def format_decimal(value: Decimal) -> str:
    if value == 0:
        return "0"
    return format(value.normalize(), "f")


def parse_balance(balance: str) -> Decimal:
    try:
        return Decimal(balance)
    except (InvalidOperation, TypeError) as e:
        raise ValidationError(f"Not a decimal balance: {balance!r}") from e


def value_of(balance: str, price_usd: float | None) -> float | None:
    """USD value of a balance, or None while the price is unknown."""
    if price_usd is None:
        return None
    return float(parse_balance(balance) * Decimal(str(price_usd)))
