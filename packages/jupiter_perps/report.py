"""Render valued positions as console text and a Telegram Markdown message."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, Sequence, Union

from .fixed_point import format_amount
from .summary import PortfolioSummary
from .valuation import ValuedPosition

CONSOLE_RULE = "=" * 80

_PROFIT_ICON = "📈"
_LOSS_ICON = "📉"


@dataclass(frozen=True)
class FormattedReport:
    console_text: str
    message_text: str


def no_positions_text(wallet_address: str) -> str:
    return f"No open positions found for {wallet_address}"


def _flag_sign(positive: bool) -> str:
    return "+" if positive else "-"


def _total_sign(value: Decimal) -> str:
    return "+" if value >= 0 else "-"


def _pnl_fragment(v: ValuedPosition) -> str:
    sign = _flag_sign(v.is_profit)
    icon = _PROFIT_ICON if v.is_profit else _LOSS_ICON
    return (
        f"{sign}${format_amount(abs(v.pnl_after_fees))} "
        f"({sign}{format_amount(abs(v.pnl_after_fees_percent))}%) {icon}"
    )


def _format_timestamp(timestamp: Union[datetime, str]) -> str:
    if isinstance(timestamp, datetime):
        return timestamp.strftime("%H:%M:%S")
    return str(timestamp)


def format_report(
    valued: Sequence[ValuedPosition],
    summary: Optional[PortfolioSummary],
    timestamp: Union[datetime, str],
    wallet_address: str,
) -> FormattedReport:
    """Build both report variants.  Pure function, no I/O."""
    if not valued:
        text = no_positions_text(wallet_address)
        return FormattedReport(console_text=text, message_text=text)

    ts = _format_timestamp(timestamp)
    count = len(valued)

    console_lines = [
        f"📊 PnL Update - {ts} - {count} position(s)",
        CONSOLE_RULE,
    ]
    message_lines = [
        f"📊 *PnL Report* - {ts}",
        f"*{count} position(s)*",
        "",
    ]

    for v in valued:
        console_lines.append(
            f"🎯 {v.label} | ${format_amount(v.current_price_usd)} | PnL: {_pnl_fragment(v)}"
        )
        message_lines.extend(
            [
                f"🎯 *{v.label}*",
                f"💰 Current: ${format_amount(v.current_price_usd)}",
                f"📊 Entry: ${format_amount(v.entry_price_usd)}",
                f"💵 Size: ${format_amount(v.size_usd)}",
                f"🔒 Collateral: ${format_amount(v.collateral_usd)}",
                f"💼 PnL: {_pnl_fragment(v)}",
                "",
            ]
        )

    if summary is not None:
        total = summary.total_pnl_after_fees
        avg = summary.avg_pnl_after_fees_percent
        total_text = f"Total PnL: {_total_sign(total)}${format_amount(abs(total))}"
        avg_text = f"Avg %: {_total_sign(avg)}{format_amount(abs(avg))}%"
        console_lines.extend([CONSOLE_RULE, f"📈 {total_text}", f"📊 {avg_text}"])
        message_lines.extend([f"📈 *{total_text}*", f"📊 *{avg_text}*"])

    return FormattedReport(
        console_text="\n".join(console_lines),
        message_text="\n".join(message_lines).rstrip("\n"),
    )
