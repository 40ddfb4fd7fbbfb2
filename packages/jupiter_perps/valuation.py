"""Unrealized PnL valuation for a single Jupiter perpetuals position.

All arithmetic runs on ``Decimal`` inside :func:`.fixed_point.valuation_context`.
Raw on-chain integers are converted at the boundary and the 6-decimal scale is
kept until the very end, where amounts are divided down to USD and quantized
for display.

Formulas
--------
::

    current   = oracle.price rescaled to 6 decimals
    pnl       = size * (current - entry) / entry          # LONG
    pnl       = size * (entry - current) / entry          # SHORT
    fees      = size * 0.0006 (open) + size * 0.0006 (close)
    after     = pnl - fees
    after_pct = after / collateral * 100

The PnL ratio divides by the entry price while the percentage divides by the
collateral; the two denominators are intentionally different.

Sign convention
---------------
``is_profit`` is ``after > 0``.  Displayed values are the rounded magnitude
with a sign chosen by that flag, so a position that is green before fees but
red after fees reads as a loss everywhere.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from .accounts import OraclePrice, Position, Side
from .errors import ValuationError
from .fixed_point import (
    USD_DECIMALS,
    from_fixed,
    rescale_oracle_price,
    round_display,
    scaled_to_usd,
    signed_magnitude,
    to_decimal,
    valuation_context,
)
from .instruments import InstrumentInfo

#: Jupiter charges 6 bps to open and 6 bps to close.
OPENING_FEE_RATE = Decimal("0.0006")
CLOSING_FEE_RATE = Decimal("0.0006")

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class ValuedPosition:
    """Display-ready valuation of one position.

    USD amounts are quantized to 2 places.  Signed fields carry the sign of
    their profit flag; fee fields are always non-negative.
    """

    account_key: str
    display_name: str
    side: Side
    entry_price_usd: Decimal
    current_price_usd: Decimal
    size_usd: Decimal
    collateral_usd: Decimal
    realized_pnl_usd: Decimal
    pnl_before_fees: Decimal
    pnl_before_fees_percent: Decimal
    opening_fee: Decimal
    closing_fee: Decimal
    total_fees: Decimal
    pnl_after_fees: Decimal
    pnl_after_fees_percent: Decimal
    is_profit: bool

    @property
    def label(self) -> str:
        return f"{self.side.value} {self.display_name}"


def raw_pnl(side: Side, size: Decimal, entry: Decimal, current: Decimal) -> Decimal:
    """Unrealized PnL in 6-decimal scaled USD, before fees."""
    with valuation_context():
        if side is Side.LONG:
            return size * (current - entry) / entry
        return size * (entry - current) / entry


def value_position(
    position: Position,
    oracle: OraclePrice,
    instrument: Optional[InstrumentInfo] = None,
    account_key: str = "",
) -> ValuedPosition:
    """Value ``position`` against ``oracle``.

    Args:
        position:    Decoded position with ``size_usd > 0``.
        oracle:      Price feed for the position's custody.
        instrument:  Display info; falls back to the custody key when omitted.
        account_key: Position account address, carried through for reporting.

    Raises:
        ValuationError: collateral or entry price is not positive.
    """
    if position.collateral_usd <= 0:
        raise ValuationError(f"position {account_key or position.custody_key} has no collateral")
    if position.entry_price <= 0:
        raise ValuationError(f"position {account_key or position.custody_key} has no entry price")

    entry = to_decimal(position.entry_price)
    size = to_decimal(position.size_usd)
    collateral = to_decimal(position.collateral_usd)
    current = rescale_oracle_price(oracle.price, oracle.exponent)

    with valuation_context():
        pnl = raw_pnl(position.side, size, entry, current)
        opening_fee = size * OPENING_FEE_RATE
        closing_fee = size * CLOSING_FEE_RATE
        total_fees = opening_fee + closing_fee
        pnl_after_fees = pnl - total_fees
        pnl_percent = pnl / collateral * _HUNDRED
        after_percent = pnl_after_fees / collateral * _HUNDRED

        has_profit = pnl > _ZERO
        is_profit = pnl_after_fees > _ZERO

        return ValuedPosition(
            account_key=account_key,
            display_name=instrument.display_name if instrument else position.custody_key,
            side=position.side,
            entry_price_usd=round_display(from_fixed(position.entry_price)),
            current_price_usd=round_display(from_fixed(current, USD_DECIMALS)),
            size_usd=round_display(from_fixed(position.size_usd)),
            collateral_usd=round_display(from_fixed(position.collateral_usd)),
            realized_pnl_usd=round_display(from_fixed(position.realized_pnl_usd)),
            pnl_before_fees=signed_magnitude(scaled_to_usd(pnl), has_profit),
            pnl_before_fees_percent=signed_magnitude(pnl_percent, has_profit),
            opening_fee=round_display(scaled_to_usd(opening_fee)),
            closing_fee=round_display(scaled_to_usd(closing_fee)),
            total_fees=round_display(scaled_to_usd(total_fees)),
            pnl_after_fees=signed_magnitude(scaled_to_usd(pnl_after_fees), is_profit),
            pnl_after_fees_percent=signed_magnitude(after_percent, is_profit),
            is_profit=is_profit,
        )
