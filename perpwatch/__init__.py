"""perpwatch - unrealized PnL reporter for Jupiter perpetuals positions."""

__version__ = "0.1.0"
