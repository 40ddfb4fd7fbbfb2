"""Jupiter perpetuals PnL valuation package."""

from .accounts import OraclePrice, Position, Side, decode_position, decode_price_feed
from .config import WatchConfig, load_config
from .errors import (
    AccountDecodeError,
    ConfigurationError,
    FetchError,
    NotificationDeliveryError,
    PerpWatchError,
    UnknownInstrumentError,
    ValuationError,
)
from .instruments import InstrumentInfo, InstrumentTable
from .notify import DeliveryResult, TelegramNotifier
from .pipeline import CycleResult, dispatch, run_cycle, value_positions
from .poller import PnlPoller, build_poller
from .report import FormattedReport, format_report
from .rpc import OracleSource, PositionSource, SolanaRpcClient
from .summary import PortfolioSummary, summarize
from .valuation import ValuedPosition, value_position

__all__ = [
    "OraclePrice",
    "Position",
    "Side",
    "decode_position",
    "decode_price_feed",
    "WatchConfig",
    "load_config",
    "AccountDecodeError",
    "ConfigurationError",
    "FetchError",
    "NotificationDeliveryError",
    "PerpWatchError",
    "UnknownInstrumentError",
    "ValuationError",
    "InstrumentInfo",
    "InstrumentTable",
    "DeliveryResult",
    "TelegramNotifier",
    "CycleResult",
    "dispatch",
    "run_cycle",
    "value_positions",
    "PnlPoller",
    "build_poller",
    "FormattedReport",
    "format_report",
    "OracleSource",
    "PositionSource",
    "SolanaRpcClient",
    "PortfolioSummary",
    "summarize",
    "ValuedPosition",
    "value_position",
]
