#!/usr/bin/env python3
"""Run a single PnL cycle and print the report."""

from __future__ import annotations

import argparse
import json
import sys
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from packages.jupiter_perps.config import load_config
from packages.jupiter_perps.errors import ConfigurationError
from packages.jupiter_perps.instruments import InstrumentTable
from packages.jupiter_perps.notify import TelegramNotifier
from packages.jupiter_perps.pipeline import CycleResult, dispatch, run_cycle
from packages.jupiter_perps.rpc import OracleSource, PositionSource, SolanaRpcClient
from tools.cli.poll import apply_overrides, configure_logging


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="perpwatch once",
        description="Value a wallet's open Jupiter positions once and print the report.",
    )
    parser.add_argument("--wallet", help="Owner wallet address (default: $WALLET_ADDRESS).")
    parser.add_argument(
        "--notify",
        action="store_true",
        help="Also send the report to the configured Telegram recipients.",
    )
    parser.add_argument(
        "--message",
        action="store_true",
        help="Print the Telegram-formatted text instead of the console text.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the valued positions as JSON.",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: $LOG_LEVEL or INFO).",
    )
    return parser


def result_to_dict(result: CycleResult) -> dict:
    """JSON-safe view of a cycle; Decimals become strings."""
    summary = result.summary
    return {
        "wallet": result.wallet_address,
        "timestamp": result.started_at.isoformat(),
        "open_positions": result.open_positions,
        "skipped": list(result.skipped),
        "error": result.error,
        "positions": [
            {
                "account": v.account_key,
                "instrument": v.display_name,
                "side": v.side.value,
                "entry_price_usd": str(v.entry_price_usd),
                "current_price_usd": str(v.current_price_usd),
                "size_usd": str(v.size_usd),
                "collateral_usd": str(v.collateral_usd),
                "pnl_before_fees": str(v.pnl_before_fees),
                "total_fees": str(v.total_fees),
                "pnl_after_fees": str(v.pnl_after_fees),
                "pnl_after_fees_percent": str(v.pnl_after_fees_percent),
            }
            for v in result.valued
        ],
        "summary": None
        if summary is None
        else {
            "total_pnl_after_fees": str(summary.total_pnl_after_fees),
            "avg_pnl_after_fees_percent": str(summary.avg_pnl_after_fees_percent),
        },
    }


def main(argv: Optional[list[str]] = None) -> int:
    """CLI entry point.  Returns exit code (0 = success, 2 = fetch failed)."""
    args = _build_parser().parse_args(argv)
    load_dotenv(find_dotenv(usecwd=True))

    try:
        config = apply_overrides(load_config(require_token=args.notify), args)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    configure_logging(config.log_level)
    rpc = SolanaRpcClient(config.rpc_url, timeout=config.http_timeout_seconds)
    result = run_cycle(
        config.wallet_address,
        PositionSource(rpc),
        OracleSource(rpc),
        InstrumentTable(),
    )

    if args.json:
        print(json.dumps(result_to_dict(result), indent=2))
    elif args.message and result.report is not None:
        print(result.report.message_text)

    notifier = None
    if args.notify:
        notifier = TelegramNotifier(
            config.telegram_bot_token,
            config.telegram_allowed_users,
            timeout=config.http_timeout_seconds,
        )
    console = print if not (args.json or args.message) else (lambda _text: None)
    dispatch(result, notifier=notifier, console=console)

    return 0 if result.ok else 2


if __name__ == "__main__":
    raise SystemExit(main())
