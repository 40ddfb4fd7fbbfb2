"""Portfolio-level totals across valued positions."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Sequence

from .fixed_point import round_display
from .valuation import ValuedPosition

_ZERO = Decimal("0")

#: A single position has no total distinct from itself.
MIN_POSITIONS_FOR_SUMMARY = 2


@dataclass(frozen=True)
class PortfolioSummary:
    total_pnl_after_fees: Decimal
    avg_pnl_after_fees_percent: Decimal
    position_count: int


def summarize(valued: Sequence[ValuedPosition]) -> Optional[PortfolioSummary]:
    """Sum and average the *displayed* (2-decimal, signed) per-position figures.

    Summing the rounded values rather than the full-precision intermediates
    keeps the totals consistent with what the report shows line by line.

    Returns ``None`` when fewer than two positions were valued.
    """
    count = len(valued)
    if count < MIN_POSITIONS_FOR_SUMMARY:
        return None

    total = sum((v.pnl_after_fees for v in valued), _ZERO)
    total_percent = sum((v.pnl_after_fees_percent for v in valued), _ZERO)

    return PortfolioSummary(
        total_pnl_after_fees=round_display(total),
        avg_pnl_after_fees_percent=round_display(total_percent / Decimal(count)),
        position_count=count,
    )
