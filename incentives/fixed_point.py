"""Fixed-point helpers: all engine amounts are integers scaled by WAD."""
from __future__ import annotations

from decimal import ROUND_DOWN, Decimal, localcontext

WAD = 10**18

# Extra precision for the reward-per-weight accumulator so that the
# per-event floor division loses at most total_weight / ACC_SCALE base units.
ACC_SCALE = 10**36

_PRECISION = 80


def to_wad(value: str | int | float | Decimal) -> int:
    """Convert a human-readable decimal amount to a WAD integer.

    Strings are parsed exactly; floats go through ``str`` first so that
    ``0.3`` becomes ``300000000000000000`` rather than its binary expansion.
    Digits beyond 18 decimals are truncated toward zero.
    """
    if isinstance(value, float):
        value = str(value)
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        scaled = Decimal(value).scaleb(18)
        return int(scaled.to_integral_value(rounding=ROUND_DOWN))


def from_wad(value: int) -> Decimal:
    """Convert a WAD integer back to a ``Decimal`` for display."""
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return Decimal(value).scaleb(-18)


def wmul(a: int, b: int) -> int:
    """Multiply two WAD numbers, truncating toward zero."""
    product = a * b
    if product < 0:
        return -(-product // WAD)
    return product // WAD


def wdiv(a: int, b: int) -> int:
    """Divide two WAD numbers, truncating toward zero."""
    if b == 0:
        raise ZeroDivisionError("wdiv by zero")
    numerator = a * WAD
    if (numerator < 0) != (b < 0):
        return -(abs(numerator) // abs(b))
    return abs(numerator) // abs(b)
