"""Fixed-point helpers for token amounts.

Token amounts cross every boundary as integers in the token's smallest
unit.  Conversions go through ``Decimal`` so no precision is lost to
binary floating point.
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation, localcontext

_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")

# Enough digits for any uint256 value
_PRECISION = 80


def parse_units(amount: str, decimals: int) -> int:
    """Convert a decimal string into smallest units.

    Args:
        amount: Human-readable amount, e.g. ``"1.5"``.
        decimals: Token decimals (18 for stETH/MOR, 8 for wBTC).

    Returns:
        Integer amount scaled by ``10**decimals``.

    Raises:
        ValueError: If ``amount`` is not a finite number or carries more
            fractional digits than ``decimals`` allows.
    """
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount: {amount!r}") from exc
    if not value.is_finite():
        raise ValueError(f"Invalid amount: {amount!r}")

    with localcontext() as ctx:
        ctx.prec = _PRECISION
        scaled = value.scaleb(decimals)
        if scaled != scaled.to_integral_value():
            raise ValueError(f"Amount {amount!r} has more than {decimals} decimals")
        return int(scaled)


def to_decimal(value: int, decimals: int) -> Decimal:
    """Convert smallest units to an exact ``Decimal``."""
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return Decimal(int(value)).scaleb(-decimals)


def format_units(value: int, decimals: int) -> str:
    """Inverse of :func:`parse_units` (``1500000000000000000, 18`` → ``"1.5"``)."""
    sign = "-" if value < 0 else ""
    whole, frac = divmod(abs(int(value)), 10**decimals)
    if decimals == 0:
        return f"{sign}{whole}"
    frac_str = str(frac).rjust(decimals, "0").rstrip("0") or "0"
    return f"{sign}{whole}.{frac_str}"


def parse_int_prefix(value: object) -> int | None:
    """Parse the leading integer of a user-typed string.

    ``"12"`` → 12, ``"12abc"`` → 12, ``"0.5"`` → 0, ``"abc"`` → None.
    Integers pass through unchanged.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if value is None:
        return None
    match = _INT_PREFIX.match(str(value))
    if match is None:
        return None
    return int(match.group(1))
