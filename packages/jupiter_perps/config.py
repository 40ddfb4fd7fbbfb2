"""Immutable watcher configuration built once from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from .errors import ConfigurationError
from .rpc import DEFAULT_RPC_URL

DEFAULT_POLL_INTERVAL_SECONDS = 30
DEFAULT_WALLET_ADDRESS = "BxmSEddwE1jBFVSXnsvDsujgjBh2GK2jhrzpZLJJidrG"
DEFAULT_PORT = 3000
DEFAULT_HTTP_TIMEOUT_SECONDS = 20.0
DEFAULT_LOG_LEVEL = "INFO"


@dataclass(frozen=True)
class WatchConfig:
    telegram_bot_token: str
    telegram_allowed_users: tuple[int, ...] = field(default_factory=tuple)
    poll_interval_seconds: int = DEFAULT_POLL_INTERVAL_SECONDS
    wallet_address: str = DEFAULT_WALLET_ADDRESS
    port: int = DEFAULT_PORT
    rpc_url: str = DEFAULT_RPC_URL
    http_timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS
    log_level: str = DEFAULT_LOG_LEVEL


def parse_recipients(raw: Optional[str]) -> tuple[int, ...]:
    """Parse a comma-separated list of Telegram chat ids."""
    if not raw or not raw.strip():
        return ()
    recipients: list[int] = []
    for part in raw.split(","):
        text = part.strip()
        if not text:
            continue
        try:
            recipients.append(int(text))
        except ValueError as exc:
            raise ConfigurationError(
                f"TELEGRAM_ALLOWED_USERS must contain integer chat ids, got: {text!r}"
            ) from exc
    return tuple(recipients)


def _int_env(env: Mapping[str, str], name: str, default: int, minimum: int = 1) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got: {raw!r}") from exc
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got: {value}")
    return value


def _float_env(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw.strip())
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got: {raw!r}") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got: {value}")
    return value


def load_config(env: Optional[Mapping[str, str]] = None, require_token: bool = True) -> WatchConfig:
    """Build a :class:`WatchConfig` from ``env`` (defaults to ``os.environ``).

    Raises:
        ConfigurationError: ``TELEGRAM_BOT_TOKEN`` missing (when required) or
            any numeric option unparseable.
    """
    if env is None:
        env = os.environ

    token = (env.get("TELEGRAM_BOT_TOKEN") or "").strip()
    if require_token and not token:
        raise ConfigurationError("TELEGRAM_BOT_TOKEN is required (set it in the environment or .env)")

    return WatchConfig(
        telegram_bot_token=token,
        telegram_allowed_users=parse_recipients(env.get("TELEGRAM_ALLOWED_USERS")),
        poll_interval_seconds=_int_env(env, "POLL_INTERVAL_SECONDS", DEFAULT_POLL_INTERVAL_SECONDS),
        wallet_address=(env.get("WALLET_ADDRESS") or DEFAULT_WALLET_ADDRESS).strip(),
        port=_int_env(env, "PORT", DEFAULT_PORT),
        rpc_url=(env.get("SOLANA_RPC_URL") or DEFAULT_RPC_URL).strip(),
        http_timeout_seconds=_float_env(env, "HTTP_TIMEOUT_SECONDS", DEFAULT_HTTP_TIMEOUT_SECONDS),
        log_level=(env.get("LOG_LEVEL") or DEFAULT_LOG_LEVEL).strip().upper(),
    )
