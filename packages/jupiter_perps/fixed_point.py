"""Decimal helpers for on-chain fixed-point integers.

Jupiter stores USD amounts and entry prices as unsigned integers with an
implicit scale of 6 decimal places.  Doves oracle prices carry their own
exponent.  Everything here converts at the boundary into ``Decimal`` so the
valuation chain never touches binary floating point.

Rounding
--------
Display values are quantized to 2 places with ``ROUND_HALF_UP``, which in the
``decimal`` module rounds ties *away from zero* (``-0.125`` → ``-0.13``).
"""

from __future__ import annotations

from contextlib import contextmanager
from decimal import ROUND_HALF_UP, Context, Decimal, localcontext
from typing import Iterator, Union

#: Implicit scale of Jupiter USD amounts and entry prices.
USD_DECIMALS = 6

#: Precision used inside the valuation chain.  A u64 times a u64 is at most
#: 39 digits, so 60 keeps every intermediate exact.
VALUATION_PRECISION = 60

_DISPLAY_QUANT = Decimal("0.01")
_USD_SCALE = Decimal(10) ** USD_DECIMALS

Number = Union[int, str, Decimal]


@contextmanager
def valuation_context() -> Iterator[Context]:
    """Decimal context with enough precision for products of two u64 values."""
    with localcontext() as ctx:
        ctx.prec = VALUATION_PRECISION
        yield ctx


def to_decimal(value: Number) -> Decimal:
    """Convert an integer or numeric string to Decimal without going through float."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        raise TypeError("float values are not accepted; pass int, str or Decimal")
    return Decimal(value)


def rescale_oracle_price(price: Number, exponent: int, target_decimals: int = USD_DECIMALS) -> Decimal:
    """Bring an oracle price into the ``target_decimals`` fixed-point frame.

    The oracle price is scaled by ``10 ** abs(exponent)``.  When that scale is
    larger than the target the price is divided down, otherwise multiplied up.

        >>> rescale_oracle_price(10500000000, -8)
        Decimal('105000000')
        >>> rescale_oracle_price(10500, -2)
        Decimal('105000000')
    """
    shift = abs(int(exponent)) - target_decimals
    raw = to_decimal(price)
    with valuation_context():
        if shift >= 0:
            return raw / (Decimal(10) ** shift)
        return raw * (Decimal(10) ** (-shift))


def from_fixed(value: Number, decimals: int = USD_DECIMALS) -> Decimal:
    """Return ``value / 10**decimals`` as an exact Decimal."""
    with valuation_context():
        return to_decimal(value) / (Decimal(10) ** decimals)


def scaled_to_usd(value: Decimal) -> Decimal:
    """Divide a 6-decimal scaled amount down to whole USD (unrounded)."""
    with valuation_context():
        return value / _USD_SCALE


def round_display(value: Decimal) -> Decimal:
    """Quantize to 2 places, ties away from zero."""
    return value.quantize(_DISPLAY_QUANT, rounding=ROUND_HALF_UP)


def signed_magnitude(value: Decimal, positive: bool) -> Decimal:
    """Rounded magnitude of ``value`` carrying the sign chosen by ``positive``."""
    magnitude = round_display(abs(value))
    return magnitude if positive else -magnitude


def format_amount(value: Decimal) -> str:
    """Fixed 2-decimal string of an already-rounded amount (no sign handling)."""
    return f"{round_display(value):.2f}"
