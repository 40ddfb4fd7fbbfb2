"""Decoders for Jupiter perpetuals ``Position`` and Doves ``PriceFeed`` accounts.

Both programs are Anchor programs, so every account starts with an 8-byte
discriminator (``sha256("account:<Name>")[:8]``) followed by the Borsh-encoded
fields.

Position layout (after the discriminator)::

    owner               pubkey   32
    pool                pubkey   32
    custody             pubkey   32
    collateral_custody  pubkey   32
    open_time           i64       8
    update_time         i64       8
    side                u8        1   (0 = None, 1 = Long, 2 = Short)
    price               u64       8
    size_usd            u64       8
    collateral_usd      u64       8
    realised_pnl_usd    i64       8
    cumulative_interest u128     16
    locked_amount       u64       8
    bump                u8        1

PriceFeed layout (after the discriminator)::

    pair       [u8; 32]  32
    signer     pubkey    32
    price      u64        8
    expo       i8         1
    timestamp  i64        8
    bump       u8         1
"""

from __future__ import annotations

import hashlib
import struct
from dataclasses import dataclass
from enum import Enum

import base58

from .errors import AccountDecodeError

DISCRIMINATOR_SIZE = 8
PUBKEY_SIZE = 32

#: Offset of ``Position.owner``; used as the memcmp offset for owner filters.
POSITION_OWNER_OFFSET = DISCRIMINATOR_SIZE

_POSITION_STRUCT = struct.Struct("<32s32s32s32sqqBQQQq16sQB")
_PRICE_FEED_STRUCT = struct.Struct("<32s32sQbqB")


def account_discriminator(name: str) -> bytes:
    """Anchor account discriminator for ``name``."""
    return hashlib.sha256(f"account:{name}".encode("utf-8")).digest()[:DISCRIMINATOR_SIZE]


POSITION_DISCRIMINATOR = account_discriminator("Position")
PRICE_FEED_DISCRIMINATOR = account_discriminator("PriceFeed")


class Side(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"


_SIDE_BY_TAG = {1: Side.LONG, 2: Side.SHORT}


@dataclass(frozen=True)
class Position:
    """Decoded Jupiter position.  Amounts are raw 6-decimal integers."""

    owner: str
    pool: str
    custody_key: str
    collateral_custody: str
    open_time: int
    update_time: int
    side: Side
    entry_price: int
    size_usd: int
    collateral_usd: int
    realized_pnl_usd: int

    @property
    def is_open(self) -> bool:
        return self.size_usd > 0


@dataclass(frozen=True)
class OraclePrice:
    """Decoded Doves price feed."""

    price: int
    exponent: int
    timestamp: int = 0


def _pubkey(raw: bytes) -> str:
    return base58.b58encode(raw).decode("ascii")


def _check_discriminator(data: bytes, expected: bytes, name: str) -> None:
    if len(data) < DISCRIMINATOR_SIZE or data[:DISCRIMINATOR_SIZE] != expected:
        raise AccountDecodeError(f"account data is not a {name} account")


def decode_position(data: bytes) -> Position:
    """Decode raw ``Position`` account bytes.

    Raises:
        AccountDecodeError: wrong discriminator, short buffer or side ``None``.
    """
    _check_discriminator(data, POSITION_DISCRIMINATOR, "Position")
    body = data[DISCRIMINATOR_SIZE:]
    if len(body) < _POSITION_STRUCT.size:
        raise AccountDecodeError(
            f"Position account too short: {len(body)} < {_POSITION_STRUCT.size} bytes"
        )
    (
        owner,
        pool,
        custody,
        collateral_custody,
        open_time,
        update_time,
        side_tag,
        price,
        size_usd,
        collateral_usd,
        realised_pnl_usd,
        _cumulative_interest,
        _locked_amount,
        _bump,
    ) = _POSITION_STRUCT.unpack_from(body)

    side = _SIDE_BY_TAG.get(side_tag)
    if side is None:
        raise AccountDecodeError(f"Position has invalid side tag {side_tag}")

    return Position(
        owner=_pubkey(owner),
        pool=_pubkey(pool),
        custody_key=_pubkey(custody),
        collateral_custody=_pubkey(collateral_custody),
        open_time=open_time,
        update_time=update_time,
        side=side,
        entry_price=price,
        size_usd=size_usd,
        collateral_usd=collateral_usd,
        realized_pnl_usd=realised_pnl_usd,
    )


def decode_price_feed(data: bytes) -> OraclePrice:
    """Decode raw Doves ``PriceFeed`` account bytes."""
    _check_discriminator(data, PRICE_FEED_DISCRIMINATOR, "PriceFeed")
    body = data[DISCRIMINATOR_SIZE:]
    if len(body) < _PRICE_FEED_STRUCT.size:
        raise AccountDecodeError(
            f"PriceFeed account too short: {len(body)} < {_PRICE_FEED_STRUCT.size} bytes"
        )
    _pair, _signer, price, expo, timestamp, _bump = _PRICE_FEED_STRUCT.unpack_from(body)
    return OraclePrice(price=price, exponent=expo, timestamp=timestamp)
