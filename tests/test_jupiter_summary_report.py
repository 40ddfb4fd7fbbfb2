"""Offline tests for portfolio totals and report rendering."""

from __future__ import annotations

import dataclasses
from datetime import datetime
from decimal import Decimal

from packages.jupiter_perps.accounts import Side
from packages.jupiter_perps.instruments import InstrumentTable
from packages.jupiter_perps.report import CONSOLE_RULE, format_report, no_positions_text
from packages.jupiter_perps.summary import PortfolioSummary, summarize
from packages.jupiter_perps.valuation import value_position
from tests._fixtures import ETH_CUSTODY, OWNER, SOL_CUSTODY, make_position, oracle_at

_D = Decimal
_TABLE = InstrumentTable()
SOL = _TABLE.resolve(SOL_CUSTODY)
ETH = _TABLE.resolve(ETH_CUSTODY)
TS = datetime(2026, 10, 19, 12, 34, 56)


def _long_gain():
    return value_position(make_position(Side.LONG), oracle_at("105"), SOL, "gain")


def _long_loss():
    return value_position(make_position(Side.LONG, custody=ETH_CUSTODY), oracle_at("95"), ETH, "loss")


# ---------------------------------------------------------------------------
# summarize
# ---------------------------------------------------------------------------


def test_summary_absent_for_empty_and_single():
    assert summarize([]) is None
    assert summarize([_long_gain()]) is None


def test_summary_sums_signed_values():
    summary = summarize([_long_gain(), _long_loss()])
    assert summary == PortfolioSummary(
        total_pnl_after_fees=_D("-24.00"),
        avg_pnl_after_fees_percent=_D("-1.20"),
        position_count=2,
    )


def test_summary_sums_rounded_not_raw_values():
    # Each position is +0.005 after fees at full precision, displayed as +0.01.
    # The raw total would display as 0.01; the displayed lines add up to 0.02.
    tiny = value_position(make_position(), oracle_at("100.12005"), SOL)
    assert tiny.pnl_after_fees == _D("0.01")

    summary = summarize([tiny, tiny])
    assert summary.total_pnl_after_fees == _D("0.02")


def test_summary_average_uses_rounded_percentages():
    base = _long_gain()
    a = dataclasses.replace(base, pnl_after_fees_percent=_D("0.01"))
    b = dataclasses.replace(base, pnl_after_fees_percent=_D("0.00"))
    summary = summarize([a, b])
    # (0.01 + 0.00) / 2 = 0.005 → 0.01 (ties away from zero)
    assert summary.avg_pnl_after_fees_percent == _D("0.01")

    c = dataclasses.replace(base, pnl_after_fees_percent=_D("-0.01"))
    d = dataclasses.replace(base, pnl_after_fees_percent=_D("-0.00"))
    assert summarize([c, d]).avg_pnl_after_fees_percent == _D("-0.01")


def test_summary_average_divides_by_valued_count():
    summary = summarize([_long_gain(), _long_gain(), _long_loss()])
    # (48.80 + 48.80 - 51.20) / 3 = 15.4666… → 15.47
    assert summary.avg_pnl_after_fees_percent == _D("15.47")
    assert summary.total_pnl_after_fees == _D("464.00")
    assert summary.position_count == 3


# ---------------------------------------------------------------------------
# format_report
# ---------------------------------------------------------------------------


def test_no_positions_report_is_single_line_for_both_sinks():
    report = format_report([], None, TS, OWNER)
    expected = f"No open positions found for {OWNER}"
    assert report.console_text == expected
    assert report.message_text == expected
    assert no_positions_text(OWNER) == expected


def test_single_position_has_block_but_no_summary():
    valued = [_long_gain()]
    report = format_report(valued, summarize(valued), TS, OWNER)

    assert report.message_text.splitlines() == [
        "📊 *PnL Report* - 12:34:56",
        "*1 position(s)*",
        "",
        "🎯 *LONG SOL*",
        "💰 Current: $105.00",
        "📊 Entry: $100.00",
        "💵 Size: $10000.00",
        "🔒 Collateral: $1000.00",
        "💼 PnL: +$488.00 (+48.80%) 📈",
    ]
    assert "Total PnL" not in report.console_text
    assert report.console_text.splitlines() == [
        "📊 PnL Update - 12:34:56 - 1 position(s)",
        CONSOLE_RULE,
        "🎯 LONG SOL | $105.00 | PnL: +$488.00 (+48.80%) 📈",
    ]


def test_loss_lines_use_minus_prefix_and_loss_icon():
    valued = [_long_loss()]
    report = format_report(valued, None, TS, OWNER)
    assert "💼 PnL: -$512.00 (-51.20%) 📉" in report.message_text
    assert "--" not in report.message_text


def test_summary_block_with_explicit_signs():
    valued = [_long_gain(), _long_loss()]
    report = format_report(valued, summarize(valued), TS, OWNER)

    lines = report.message_text.splitlines()
    assert lines[1] == "*2 position(s)*"
    assert lines[-2] == "📈 *Total PnL: -$24.00*"
    assert lines[-1] == "📊 *Avg %: -1.20%*"
    assert report.console_text.splitlines()[-2:] == ["📈 Total PnL: -$24.00", "📊 Avg %: -1.20%"]

    # positions keep source order
    assert lines.index("🎯 *LONG SOL*") < lines.index("🎯 *LONG ETH*")


def test_non_negative_summary_shows_plus():
    gain = _long_gain()
    report = format_report([gain, gain], summarize([gain, gain]), TS, OWNER)
    assert "📈 *Total PnL: +$976.00*" in report.message_text
    assert "📊 *Avg %: +48.80%*" in report.message_text

    zero = PortfolioSummary(_D("0.00"), _D("-0.00"), 2)
    report = format_report([gain, gain], zero, TS, OWNER)
    assert "Total PnL: +$0.00" in report.console_text
    assert "Avg %: +0.00%" in report.console_text


def test_string_timestamp_is_used_verbatim():
    report = format_report([_long_gain()], None, "08:00:00 PM", OWNER)
    assert report.message_text.startswith("📊 *PnL Report* - 08:00:00 PM")
