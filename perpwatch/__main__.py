"""Module entrypoint for running perpwatch CLI commands.

Usage: python -m perpwatch <command> [options]
"""

from __future__ import annotations

import sys
from typing import Optional


def print_usage() -> None:
    """Print CLI usage information."""
    print("perpwatch - Jupiter perpetuals PnL reporter")
    print("")
    print("Usage: perpwatch <command> [options]")
    print("       python -m perpwatch <command> [options]")
    print("")
    print("Commands:")
    print("  poll              Poll PnL on an interval, notify Telegram, serve /health")
    print("  once              Run a single PnL cycle and print the report")
    print("")
    print("Options:")
    print("  -h, --help        Show this help message")
    print("  --version         Show version information")
    print("")
    print("Examples:")
    print("  perpwatch poll --interval 60")
    print("  perpwatch once --wallet <address> --json")
    print("")
    print("Configuration is read from the environment (and a local .env file).")


def print_version() -> None:
    """Print version information."""
    from perpwatch import __version__
    print(f"perpwatch {__version__}")


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entrypoint."""
    if argv is None:
        argv = sys.argv[1:]

    if len(argv) < 1:
        print_usage()
        return 1

    command = argv[0]

    if command in ("-h", "--help"):
        print_usage()
        return 0

    if command in ("-v", "--version"):
        print_version()
        return 0

    if command == "poll":
        from tools.cli.poll import main as poll_main
        return poll_main(argv[1:])
    if command == "once":
        from tools.cli.pnl_once import main as once_main
        return once_main(argv[1:])

    print(f"Unknown command: {command}", file=sys.stderr)
    print("Run 'perpwatch --help' for usage information.", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
