"""One poll cycle: fetch → value → summarize → format.

``run_cycle`` never raises for per-cycle problems.  A :class:`FetchError`
abandons the cycle and is recorded on the result; unknown instruments and
unvaluable positions are skipped one by one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, Mapping, Optional, Protocol, Sequence

from .accounts import OraclePrice, Position
from .errors import FetchError, UnknownInstrumentError, ValuationError
from .instruments import InstrumentTable
from .notify import DeliveryResult
from .report import FormattedReport, format_report
from .summary import PortfolioSummary, summarize
from .valuation import ValuedPosition, value_position

logger = logging.getLogger(__name__)


class PositionFetcher(Protocol):
    def fetch_open_positions(self, owner_address: str) -> list[tuple[str, Position]]: ...


class PriceFetcher(Protocol):
    def fetch_prices(self, oracle_addresses: Iterable[str]) -> dict[str, OraclePrice]: ...


class Notifier(Protocol):
    def send(self, text: str) -> DeliveryResult: ...


@dataclass
class CycleResult:
    wallet_address: str
    started_at: datetime
    open_positions: int = 0
    valued: list[ValuedPosition] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    summary: Optional[PortfolioSummary] = None
    report: Optional[FormattedReport] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def value_positions(
    positions: Sequence[tuple[str, Position]],
    prices: Mapping[str, OraclePrice],
    instruments: InstrumentTable,
) -> tuple[list[ValuedPosition], list[str]]:
    """Value each position in source order.

    Returns:
        ``(valued, skipped)`` where ``skipped`` holds the account keys that were
        left out because their custody is unknown or they could not be valued.
    """
    valued: list[ValuedPosition] = []
    skipped: list[str] = []
    for account_key, position in positions:
        try:
            instrument = instruments.resolve(position.custody_key)
        except UnknownInstrumentError as exc:
            logger.warning(f"{exc} (position {account_key} skipped)")
            skipped.append(account_key)
            continue

        oracle = prices.get(instrument.oracle_address)
        if oracle is None:
            raise FetchError(f"no oracle price for {instrument.display_name}")

        try:
            valued.append(value_position(position, oracle, instrument, account_key=account_key))
        except ValuationError as exc:
            logger.error(f"Skipping position {account_key}: {exc}")
            skipped.append(account_key)
    return valued, skipped


def run_cycle(
    wallet_address: str,
    positions: PositionFetcher,
    oracles: PriceFetcher,
    instruments: Optional[InstrumentTable] = None,
    now: Optional[Callable[[], datetime]] = None,
) -> CycleResult:
    """Compute the PnL report for ``wallet_address`` from freshly fetched data."""
    if instruments is None:
        instruments = InstrumentTable()
    started_at = (now or datetime.now)()
    result = CycleResult(wallet_address=wallet_address, started_at=started_at)

    try:
        open_positions = positions.fetch_open_positions(wallet_address)
        result.open_positions = len(open_positions)
        oracle_addresses = [
            instruments.get(pos.custody_key).oracle_address
            for _, pos in open_positions
            if pos.custody_key in instruments
        ]
        prices = oracles.fetch_prices(oracle_addresses) if oracle_addresses else {}
        result.valued, result.skipped = value_positions(open_positions, prices, instruments)
    except FetchError as exc:
        logger.error(f"Failed to fetch current PnL: {exc}")
        result.valued, result.skipped = [], []
        result.error = str(exc)
        return result

    result.summary = summarize(result.valued)
    result.report = format_report(result.valued, result.summary, started_at, wallet_address)
    return result


def dispatch(
    result: CycleResult,
    notifier: Optional[Notifier] = None,
    console: Callable[[str], None] = print,
) -> Optional[DeliveryResult]:
    """Print the console report and send the message report.

    Nothing is sent for a failed cycle.
    """
    if result.report is None:
        return None
    console(result.report.console_text)
    if notifier is None:
        return None
    return notifier.send(result.report.message_text)
