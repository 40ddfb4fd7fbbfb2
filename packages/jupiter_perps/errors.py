"""Exception hierarchy for the PnL watcher.

Only :class:`ConfigurationError` is fatal, and only at startup.  Everything
else is contained to the poll cycle that raised it.
"""

from __future__ import annotations


class PerpWatchError(Exception):
    """Base class for all perpwatch errors."""


class ConfigurationError(PerpWatchError):
    """Raised when required configuration is missing or malformed."""


class FetchError(PerpWatchError):
    """Raised when the position or oracle source is unavailable or returns bad data."""


class AccountDecodeError(FetchError):
    """Raised when raw account bytes do not match the expected layout."""


class UnknownInstrumentError(PerpWatchError):
    """Raised when a custody key has no entry in the instrument table."""

    def __init__(self, custody_key: str):
        super().__init__(f"Unknown custody: {custody_key}")
        self.custody_key = custody_key


class ValuationError(PerpWatchError):
    """Raised when a position cannot be valued (zero collateral or entry price)."""


class NotificationDeliveryError(PerpWatchError):
    """Raised when a message cannot be delivered to one recipient."""

    def __init__(self, recipient: int, message: str):
        super().__init__(f"delivery to {recipient} failed: {message}")
        self.recipient = recipient
        self.message = message
