"""Liveness service for the Jupiter PnL reporter.

The poller runs on a background thread for the lifetime of the app; the HTTP
routes only report on it.  Valuation correctness does not depend on them.

Usage:
    python -m perpwatch poll
    # or
    uvicorn services.api.main:app --port 3000   (reads config from the environment)
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from packages.jupiter_perps.config import load_config
from packages.jupiter_perps.poller import PnlPoller, build_poller

logger = logging.getLogger(__name__)

SERVICE_NAME = "jupiter-pnl-reporter"


class RootResponse(BaseModel):
    status: str
    service: str
    uptime: float


class HealthResponse(BaseModel):
    status: str


class StatusResponse(BaseModel):
    service: str
    running: bool
    cycles: int
    failed_cycles: int
    last_cycle_at: Optional[datetime] = None
    last_error: Optional[str] = None
    last_valued: int
    last_skipped: int


def create_app(poller: Optional[PnlPoller] = None, start_poller: bool = True) -> FastAPI:
    """Build the liveness app.

    Args:
        poller:       Poller to start with the app and report on.  ``None``
                      serves liveness only.
        start_poller: Start/stop ``poller`` with the app lifespan.
    """
    started = time.monotonic()

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        if poller is not None and start_poller:
            poller.start()
        try:
            yield
        finally:
            if poller is not None and start_poller:
                await asyncio.to_thread(poller.stop)

    app = FastAPI(title="Jupiter PnL Reporter", version="0.1.0", lifespan=lifespan)

    @app.get("/", response_model=RootResponse)
    async def root() -> RootResponse:
        """Process status and uptime in seconds."""
        return RootResponse(status="running", service=SERVICE_NAME, uptime=time.monotonic() - started)

    @app.get("/health", response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(status="healthy")

    @app.get("/status", response_model=StatusResponse)
    async def poller_status() -> StatusResponse:
        """Outcome of the most recent poll cycle."""
        if poller is None:
            raise HTTPException(status_code=404, detail="poller not configured")
        status = poller.status()
        return StatusResponse(service=SERVICE_NAME, **status.to_dict())

    return app


def _app_from_env() -> FastAPI:
    config = load_config()
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    return create_app(build_poller(config))


def __getattr__(name: str):
    # `uvicorn services.api.main:app` resolves the app lazily so importing
    # this module never requires credentials.
    if name == "app":
        return _app_from_env()
    raise AttributeError(name)
