from __future__ import annotations

import pytest


_ISOLATED_ENV_VARS = (
    "TELEGRAM_BOT_TOKEN",
    "TELEGRAM_ALLOWED_USERS",
    "POLL_INTERVAL_SECONDS",
    "WALLET_ADDRESS",
    "PORT",
    "SOLANA_RPC_URL",
    "HTTP_TIMEOUT_SECONDS",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Keep the developer's shell and any local .env out of every test."""
    for key in _ISOLATED_ENV_VARS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
