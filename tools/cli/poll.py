#!/usr/bin/env python3
"""Continuously poll a wallet's Jupiter PnL and serve the liveness endpoint."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from packages.jupiter_perps.config import WatchConfig, load_config
from packages.jupiter_perps.errors import ConfigurationError
from packages.jupiter_perps.poller import build_poller

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="perpwatch poll",
        description=(
            "Poll the unrealized PnL of a wallet's open Jupiter perpetuals "
            "positions, print it, and send it to Telegram."
        ),
    )
    parser.add_argument("--wallet", help="Owner wallet address (default: $WALLET_ADDRESS).")
    parser.add_argument(
        "--interval",
        type=int,
        help="Seconds between cycles (default: $POLL_INTERVAL_SECONDS or 30).",
    )
    parser.add_argument("--port", type=int, help="Liveness port (default: $PORT or 3000).")
    parser.add_argument("--host", default="0.0.0.0", help="Liveness bind address.")
    parser.add_argument(
        "--no-server",
        action="store_true",
        help="Poll without starting the liveness HTTP server.",
    )
    parser.add_argument(
        "--no-notify",
        action="store_true",
        help="Print reports only; do not send Telegram messages.",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: $LOG_LEVEL or INFO).",
    )
    return parser


def apply_overrides(config: WatchConfig, args: argparse.Namespace) -> WatchConfig:
    """Return ``config`` with any command-line overrides applied."""
    changes = {}
    if getattr(args, "wallet", None):
        changes["wallet_address"] = args.wallet
    if getattr(args, "interval", None) is not None:
        if args.interval < 1:
            raise ConfigurationError("--interval must be >= 1")
        changes["poll_interval_seconds"] = args.interval
    if getattr(args, "port", None) is not None:
        changes["port"] = args.port
    if getattr(args, "log_level", None):
        changes["log_level"] = args.log_level
    return dataclasses.replace(config, **changes) if changes else config


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def main(argv: Optional[list[str]] = None) -> int:
    """CLI entry point.  Returns exit code (0 = success)."""
    args = _build_parser().parse_args(argv)
    load_dotenv(find_dotenv(usecwd=True))

    try:
        config = apply_overrides(load_config(), args)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    configure_logging(config.log_level)
    poller = build_poller(config, notify=not args.no_notify)

    logger.info(f"Starting PnL monitoring for wallet: {config.wallet_address}")
    logger.info(f"Polling every {config.poll_interval_seconds} seconds")
    if args.no_notify:
        logger.info("Telegram notifications disabled")
    else:
        users = ", ".join(str(u) for u in config.telegram_allowed_users) or "(none)"
        logger.info(f"Telegram notifications enabled for users: {users}")

    if args.no_server:
        poller.start()
        try:
            poller.wait()
        except KeyboardInterrupt:
            pass
        finally:
            poller.stop()
        return 0

    import uvicorn

    from services.api.main import create_app

    logger.info(f"Liveness server on {args.host}:{config.port}")
    uvicorn.run(create_app(poller), host=args.host, port=config.port, log_level="warning")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
