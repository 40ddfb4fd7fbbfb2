"""Static custody → instrument lookup for the Jupiter perpetuals pool."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import UnknownInstrumentError

#: Jupiter perpetuals program.
JUPITER_PERPETUALS_PROGRAM_ID = "PERPHjGBqRHArX4DySjwM6UJHiR3sWAatqfdBS2qQJu"

#: Doves oracle program.
DOVES_PROGRAM_ID = "DoVEsk76QybCEHQGzkvYPWLQu9gzNoZZZt3TPiL597e"


@dataclass(frozen=True)
class InstrumentInfo:
    display_name: str
    oracle_address: str


DEFAULT_INSTRUMENTS: dict[str, InstrumentInfo] = {
    "7xS2gz2bTp3fwCC7knJvUWTEU9Tycczu6VhJYKgi1wdz": InstrumentInfo(
        "SOL", "39cWjvHrpHNz2SbXv6ME4NPhqBDBd4KsjUYv5JkHEAJU"
    ),
    "AQCGyheWPLeo6Qp9WpYS9m3Qj479t7R636N9ey1rEjEn": InstrumentInfo(
        "ETH", "5URYohbPy32nxK1t3jAHVNfdWY2xTubHiFvLrE3VhXEp"
    ),
    "5Pv3gM9JrFFH883SWAhvJC9RPYmo8UNxuFtv5bMMALkm": InstrumentInfo(
        "BTC", "4HBbPx9QJdjJ7GUe6bsiJjGybvfpDhQMMPXP1UEa7VT5"
    ),
    "G18jKKXQwBbrHeiK3C9MRXhkHsLHf7XgCSisykV46EZa": InstrumentInfo(
        "USDC", "A28T5pKtscnhDo6C1Sz786Tup88aTjt8uyKewjVvPrGk"
    ),
    "4vkNeXiYEUizLdrpdPS1eC2mccyM4NUPRtERrk6ZETkk": InstrumentInfo(
        "USDT", "AGW7q2a3WxCzh5TB2Q6yNde1Nf41g3HLaaXdybz7cbBU"
    ),
}


class InstrumentTable:
    """Read-only mapping of custody key to :class:`InstrumentInfo`."""

    def __init__(self, entries: Optional[Mapping[str, InstrumentInfo]] = None):
        self._entries: dict[str, InstrumentInfo] = dict(
            DEFAULT_INSTRUMENTS if entries is None else entries
        )

    def get(self, custody_key: str) -> Optional[InstrumentInfo]:
        return self._entries.get(custody_key)

    def resolve(self, custody_key: str) -> InstrumentInfo:
        """Return the instrument for ``custody_key`` or raise UnknownInstrumentError."""
        info = self._entries.get(custody_key)
        if info is None:
            raise UnknownInstrumentError(custody_key)
        return info

    def __contains__(self, custody_key: object) -> bool:
        return custody_key in self._entries
