"""Read-only Solana JSON-RPC access for positions and oracle prices."""

from __future__ import annotations

import base64
import binascii
import itertools
import logging
from typing import Any, Iterable, Optional, Sequence

import base58
import requests

from .accounts import (
    POSITION_DISCRIMINATOR,
    POSITION_OWNER_OFFSET,
    OraclePrice,
    Position,
    decode_position,
    decode_price_feed,
)
from .errors import FetchError
from .http_client import HttpClient
from .instruments import JUPITER_PERPETUALS_PROGRAM_ID

logger = logging.getLogger(__name__)

DEFAULT_RPC_URL = "https://api.mainnet-beta.solana.com"
DEFAULT_COMMITMENT = "confirmed"

#: getMultipleAccounts accepts at most 100 keys per call.
MAX_MULTIPLE_ACCOUNTS = 100


def _decode_account_data(account: dict) -> bytes:
    data = account.get("data")
    if not isinstance(data, list) or len(data) != 2 or data[1] != "base64":
        raise FetchError(f"unexpected account data encoding: {data!r:.80}")
    try:
        return base64.b64decode(data[0])
    except (binascii.Error, TypeError) as exc:
        raise FetchError(f"account data is not valid base64: {exc}") from exc


class SolanaRpcClient:
    """Minimal JSON-RPC client over :class:`HttpClient`."""

    def __init__(
        self,
        rpc_url: str = DEFAULT_RPC_URL,
        timeout: float = 20.0,
        commitment: str = DEFAULT_COMMITMENT,
    ):
        self.client = HttpClient(base_url=rpc_url, timeout=timeout)
        self.commitment = commitment
        self._ids = itertools.count(1)

    def call(self, method: str, params: Optional[list] = None) -> Any:
        """Invoke ``method`` and return its ``result`` field.

        Raises:
            FetchError: transport failure, non-JSON body, or an RPC error object.
        """
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }
        try:
            body = self.client.post_json("", json=payload)
        except (requests.RequestException, ValueError) as exc:
            raise FetchError(f"{method} failed: {exc}") from exc

        if not isinstance(body, dict):
            raise FetchError(f"{method} returned a non-object response")
        if body.get("error"):
            error = body["error"]
            message = error.get("message") if isinstance(error, dict) else error
            raise FetchError(f"{method} RPC error: {message}")
        if "result" not in body:
            raise FetchError(f"{method} response has no result")
        return body["result"]

    def get_program_accounts(self, program_id: str, filters: Sequence[dict]) -> list[dict]:
        result = self.call(
            "getProgramAccounts",
            [
                program_id,
                {
                    "commitment": self.commitment,
                    "encoding": "base64",
                    "filters": list(filters),
                },
            ],
        )
        if not isinstance(result, list):
            raise FetchError("getProgramAccounts returned a non-list result")
        return result

    def get_multiple_accounts(self, addresses: Sequence[str]) -> list[Optional[dict]]:
        accounts: list[Optional[dict]] = []
        for start in range(0, len(addresses), MAX_MULTIPLE_ACCOUNTS):
            chunk = list(addresses[start:start + MAX_MULTIPLE_ACCOUNTS])
            result = self.call(
                "getMultipleAccounts",
                [chunk, {"commitment": self.commitment, "encoding": "base64"}],
            )
            values = result.get("value") if isinstance(result, dict) else None
            if not isinstance(values, list) or len(values) != len(chunk):
                raise FetchError("getMultipleAccounts returned an unexpected value list")
            accounts.extend(values)
        return accounts


class PositionSource:
    """Fetch a wallet's open Jupiter positions."""

    def __init__(self, rpc: SolanaRpcClient, program_id: str = JUPITER_PERPETUALS_PROGRAM_ID):
        self.rpc = rpc
        self.program_id = program_id

    def filters_for(self, owner_address: str) -> list[dict]:
        return [
            {"memcmp": {"offset": 0, "bytes": base58.b58encode(POSITION_DISCRIMINATOR).decode("ascii")}},
            {"memcmp": {"offset": POSITION_OWNER_OFFSET, "bytes": owner_address}},
        ]

    def fetch_positions(self, owner_address: str) -> list[tuple[str, Position]]:
        """All position accounts owned by ``owner_address``, in RPC order."""
        positions: list[tuple[str, Position]] = []
        for item in self.rpc.get_program_accounts(self.program_id, self.filters_for(owner_address)):
            try:
                pubkey = item["pubkey"]
                account = item["account"]
            except (KeyError, TypeError) as exc:
                raise FetchError(f"malformed getProgramAccounts entry: {item!r:.80}") from exc
            positions.append((pubkey, decode_position(_decode_account_data(account))))
        return positions

    def fetch_open_positions(self, owner_address: str) -> list[tuple[str, Position]]:
        """Positions with ``size_usd > 0``; closed positions keep their account around."""
        return [(key, pos) for key, pos in self.fetch_positions(owner_address) if pos.is_open]


class OracleSource:
    """Fetch Doves price feeds."""

    def __init__(self, rpc: SolanaRpcClient):
        self.rpc = rpc

    def fetch_price(self, oracle_address: str) -> OraclePrice:
        return self.fetch_prices([oracle_address])[oracle_address]

    def fetch_prices(self, oracle_addresses: Iterable[str]) -> dict[str, OraclePrice]:
        """Fetch every distinct address in one round trip per 100 keys."""
        addresses = list(dict.fromkeys(oracle_addresses))
        if not addresses:
            return {}
        prices: dict[str, OraclePrice] = {}
        for address, account in zip(addresses, self.rpc.get_multiple_accounts(addresses)):
            if account is None:
                raise FetchError(f"oracle account {address} not found")
            prices[address] = decode_price_feed(_decode_account_data(account))
        return prices
