"""Offline tests for account decoding and Solana JSON-RPC request shaping."""

from __future__ import annotations

import base58
import pytest
import requests

from packages.jupiter_perps.accounts import (
    POSITION_DISCRIMINATOR,
    POSITION_OWNER_OFFSET,
    PRICE_FEED_DISCRIMINATOR,
    Side,
    account_discriminator,
    decode_position,
    decode_price_feed,
)
from packages.jupiter_perps.errors import AccountDecodeError, FetchError
from packages.jupiter_perps.http_client import HttpClient
from packages.jupiter_perps.instruments import JUPITER_PERPETUALS_PROGRAM_ID
from packages.jupiter_perps.rpc import OracleSource, PositionSource, SolanaRpcClient
from tests._fixtures import (
    ETH_CUSTODY,
    ETH_ORACLE,
    OWNER,
    SOL_CUSTODY,
    SOL_ORACLE,
    USD,
    position_bytes,
    price_feed_bytes,
    rpc_account,
)


class _CaptureHttpClient:
    """Stands in for HttpClient.post_json; replies are consumed in order."""

    def __init__(self, replies) -> None:
        self.replies = list(replies)
        self.calls: list[dict] = []

    def post_json(self, path, json=None, headers=None):
        self.calls.append({"path": path, "json": json})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def _rpc(replies) -> tuple[SolanaRpcClient, _CaptureHttpClient]:
    rpc = SolanaRpcClient("https://rpc.example")
    capture = _CaptureHttpClient(replies)
    rpc.client = capture
    return rpc, capture


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def test_discriminators_match_anchor_convention():
    assert account_discriminator("Position") == POSITION_DISCRIMINATOR
    assert len(POSITION_DISCRIMINATOR) == 8
    assert POSITION_DISCRIMINATOR != PRICE_FEED_DISCRIMINATOR


def test_decode_position_fields():
    raw = position_bytes(
        custody=ETH_CUSTODY,
        side_tag=2,
        price=3_500 * USD,
        size_usd=2_000 * USD,
        collateral_usd=400 * USD,
        realised_pnl_usd=-5 * USD,
    )
    position = decode_position(raw)

    assert position.owner == OWNER
    assert position.custody_key == ETH_CUSTODY
    assert position.side is Side.SHORT
    assert position.entry_price == 3_500 * USD
    assert position.size_usd == 2_000 * USD
    assert position.collateral_usd == 400 * USD
    assert position.realized_pnl_usd == -5 * USD
    assert position.open_time == 1_700_000_000
    assert position.is_open


def test_decode_position_rejects_wrong_discriminator():
    with pytest.raises(AccountDecodeError):
        decode_position(position_bytes(discriminator=PRICE_FEED_DISCRIMINATOR))


def test_decode_position_rejects_side_none():
    with pytest.raises(AccountDecodeError):
        decode_position(position_bytes(side_tag=0))


def test_decode_position_rejects_truncated_data():
    with pytest.raises(AccountDecodeError):
        decode_position(position_bytes()[:100])


def test_decode_price_feed_negative_exponent():
    oracle = decode_price_feed(price_feed_bytes(15_012_345_678, expo=-8, timestamp=42))
    assert oracle.price == 15_012_345_678
    assert oracle.exponent == -8
    assert oracle.timestamp == 42


# ---------------------------------------------------------------------------
# SolanaRpcClient
# ---------------------------------------------------------------------------


def test_rpc_error_payload_raises_fetch_error():
    rpc, _ = _rpc([{"jsonrpc": "2.0", "id": 1, "error": {"code": -32005, "message": "busy"}}])
    with pytest.raises(FetchError, match="busy"):
        rpc.call("getHealth")


def test_transport_error_raises_fetch_error():
    rpc, _ = _rpc([requests.exceptions.ConnectionError("refused")])
    with pytest.raises(FetchError, match="refused"):
        rpc.call("getHealth")


def test_response_without_result_raises_fetch_error():
    rpc, _ = _rpc([{"jsonrpc": "2.0", "id": 1}])
    with pytest.raises(FetchError):
        rpc.call("getHealth")


class _FailingSession:
    def __init__(self, exc) -> None:
        self.exc = exc
        self.calls: list[tuple] = []

    def request(self, method, url, timeout=None, **kwargs):
        self.calls.append((method, url, timeout))
        raise self.exc


def test_rpc_client_targets_base_url():
    rpc = SolanaRpcClient("https://rpc.example/", timeout=7.0)
    assert isinstance(rpc.client, HttpClient)
    assert rpc.client.base_url == "https://rpc.example"
    assert rpc.client.timeout == 7.0


def test_failed_request_is_sent_once_and_raised():
    session = _FailingSession(requests.exceptions.ConnectionError("refused"))
    rpc = SolanaRpcClient("https://rpc.example")
    rpc.client = HttpClient("https://rpc.example", timeout=3.0, session=session)

    with pytest.raises(FetchError, match="refused"):
        rpc.call("getHealth")

    assert session.calls == [("POST", "https://rpc.example", 3.0)]


def test_request_ids_increment():
    rpc, capture = _rpc([{"result": 1}, {"result": 2}])
    rpc.call("getSlot")
    rpc.call("getSlot")
    assert [c["json"]["id"] for c in capture.calls] == [1, 2]


# ---------------------------------------------------------------------------
# PositionSource
# ---------------------------------------------------------------------------


def test_fetch_open_positions_filters_and_decodes():
    open_raw = position_bytes(custody=SOL_CUSTODY)
    closed_raw = position_bytes(custody=ETH_CUSTODY, size_usd=0)
    rpc, capture = _rpc(
        [
            {
                "jsonrpc": "2.0",
                "id": 1,
                "result": [
                    {"pubkey": "PosOpen", "account": rpc_account(open_raw)},
                    {"pubkey": "PosClosed", "account": rpc_account(closed_raw)},
                ],
            }
        ]
    )

    positions = PositionSource(rpc).fetch_open_positions(OWNER)

    assert [key for key, _ in positions] == ["PosOpen"]
    assert positions[0][1].custody_key == SOL_CUSTODY

    payload = capture.calls[0]["json"]
    assert payload["method"] == "getProgramAccounts"
    program_id, options = payload["params"]
    assert program_id == JUPITER_PERPETUALS_PROGRAM_ID
    assert options["encoding"] == "base64"
    assert options["commitment"] == "confirmed"
    filters = options["filters"]
    assert filters[0]["memcmp"]["offset"] == 0
    assert base58.b58decode(filters[0]["memcmp"]["bytes"]) == POSITION_DISCRIMINATOR
    assert filters[1]["memcmp"] == {"offset": POSITION_OWNER_OFFSET, "bytes": OWNER}


def test_fetch_positions_rejects_bad_encoding():
    rpc, _ = _rpc(
        [{"result": [{"pubkey": "P", "account": {"data": ["abc", "base58"]}}]}]
    )
    with pytest.raises(FetchError):
        PositionSource(rpc).fetch_open_positions(OWNER)


def test_fetch_positions_propagates_decode_errors_as_fetch_errors():
    rpc, _ = _rpc([{"result": [{"pubkey": "P", "account": rpc_account(b"\x00" * 40)}]}])
    with pytest.raises(FetchError):
        PositionSource(rpc).fetch_open_positions(OWNER)


# ---------------------------------------------------------------------------
# OracleSource
# ---------------------------------------------------------------------------


def test_fetch_prices_deduplicates_and_keeps_mapping():
    rpc, capture = _rpc(
        [
            {
                "result": {
                    "context": {"slot": 1},
                    "value": [
                        rpc_account(price_feed_bytes(15_000_000_000, expo=-8)),
                        rpc_account(price_feed_bytes(350_000_000_000, expo=-8)),
                    ],
                }
            }
        ]
    )

    prices = OracleSource(rpc).fetch_prices([SOL_ORACLE, ETH_ORACLE, SOL_ORACLE])

    assert capture.calls[0]["json"]["method"] == "getMultipleAccounts"
    assert capture.calls[0]["json"]["params"][0] == [SOL_ORACLE, ETH_ORACLE]
    assert prices[SOL_ORACLE].price == 15_000_000_000
    assert prices[ETH_ORACLE].price == 350_000_000_000


def test_fetch_price_missing_account_raises():
    rpc, _ = _rpc([{"result": {"context": {"slot": 1}, "value": [None]}}])
    with pytest.raises(FetchError, match="not found"):
        OracleSource(rpc).fetch_price(SOL_ORACLE)


def test_fetch_prices_empty_makes_no_call():
    rpc, capture = _rpc([])
    assert OracleSource(rpc).fetch_prices([]) == {}
    assert capture.calls == []
