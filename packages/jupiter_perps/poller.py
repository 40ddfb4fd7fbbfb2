"""Fixed-interval scheduler for PnL cycles.

One daemon thread runs cycles back to back, waiting ``interval_seconds``
*after* each cycle finishes, so two cycles are never in flight at once.
Notification delivery is handed to a single-worker executor; the loop does
not wait for it.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from .config import WatchConfig
from .instruments import InstrumentTable
from .notify import TelegramNotifier
from .pipeline import CycleResult, Notifier, run_cycle
from .rpc import OracleSource, PositionSource, SolanaRpcClient

logger = logging.getLogger(__name__)


@dataclass
class PollerStatus:
    """Liveness snapshot exposed by the health endpoint."""

    running: bool
    cycles: int
    failed_cycles: int
    last_cycle_at: Optional[datetime]
    last_error: Optional[str]
    last_valued: int
    last_skipped: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "running": self.running,
            "cycles": self.cycles,
            "failed_cycles": self.failed_cycles,
            "last_cycle_at": self.last_cycle_at.isoformat() if self.last_cycle_at else None,
            "last_error": self.last_error,
            "last_valued": self.last_valued,
            "last_skipped": self.last_skipped,
        }


class PnlPoller:
    """Run ``cycle`` every ``interval_seconds`` until stopped.

    Args:
        cycle:            Zero-argument callable returning a :class:`CycleResult`.
        interval_seconds: Pause between the end of one cycle and the next.
        notifier:         Optional message sink; ``None`` disables notifications.
        console:          Sink for the console report (``print`` by default).
    """

    def __init__(
        self,
        cycle: Callable[[], CycleResult],
        interval_seconds: float,
        notifier: Optional[Notifier] = None,
        console: Callable[[str], None] = print,
    ):
        self._cycle = cycle
        self.interval_seconds = interval_seconds
        self._notifier = notifier
        self._console = console
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._pending: Optional[Future] = None
        self._notify_lock = threading.Lock()
        self._lock = threading.Lock()
        self.started_monotonic = time.monotonic()

        self._cycles = 0
        self._failed_cycles = 0
        self._last_result: Optional[CycleResult] = None

    # ------------------------------------------------------------------
    # Cycle execution
    # ------------------------------------------------------------------

    def run_once(self) -> Optional[CycleResult]:
        """Run one cycle synchronously and hand its message to the notifier."""
        try:
            result = self._cycle()
        except Exception:
            logger.exception("PnL cycle crashed")
            with self._lock:
                self._cycles += 1
                self._failed_cycles += 1
            return None

        with self._lock:
            self._cycles += 1
            if not result.ok:
                self._failed_cycles += 1
            self._last_result = result

        if result.report is None:
            return result

        self._console(result.report.console_text)
        if self._notifier is not None:
            self._submit_notification(result.report.message_text)
        return result

    def _submit_notification(self, text: str) -> Optional[Future]:
        """Hand ``text`` to the notifier unless a delivery is still in flight.

        At most one delivery runs at a time; a report produced while the
        previous one is still sending is dropped, not queued.
        """
        with self._notify_lock:
            if self._stop.is_set():
                logger.info("Poller stopping; report not sent")
                return None
            if self._pending is not None and not self._pending.done():
                logger.warning("Previous notification still sending; report for this cycle skipped")
                return None
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pnl-notify")
            future = self._executor.submit(self._notifier.send, text)
            future.add_done_callback(self._log_delivery_failure)
            self._pending = future
            return future

    @staticmethod
    def _log_delivery_failure(future: Future) -> None:
        exc = future.exception()
        if exc is not None:
            logger.error(f"Notification task failed: {exc}")

    # ------------------------------------------------------------------
    # Thread lifecycle
    # ------------------------------------------------------------------

    def _run(self) -> None:
        logger.info(f"PnL polling started (every {self.interval_seconds}s)")
        while not self._stop.is_set():
            self.run_once()
            if self._stop.wait(self.interval_seconds):
                break
        logger.info("PnL polling stopped")

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            if self._stop.is_set():
                logger.warning("Previous polling thread is still finishing a cycle; not restarting")
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="pnl-poller", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Stop polling and drain the notification worker.

        A cycle still running after ``timeout`` is left to finish on its
        thread; it sends nothing, and the thread is kept so ``start`` cannot
        overlap it.
        """
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning(f"PnL cycle still running after {timeout}s; it will exit when done")
            else:
                self._thread = None
        with self._notify_lock:
            executor = self._executor
            self._executor = None
            self._pending = None
        if executor is not None:
            executor.shutdown(wait=True)

    def wait(self) -> None:
        """Block until the polling thread exits (Ctrl+C friendly)."""
        while self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=0.5)

    # ------------------------------------------------------------------
    # Liveness
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def uptime_seconds(self) -> float:
        return time.monotonic() - self.started_monotonic

    def status(self) -> PollerStatus:
        with self._lock:
            last = self._last_result
            return PollerStatus(
                running=self.is_running,
                cycles=self._cycles,
                failed_cycles=self._failed_cycles,
                last_cycle_at=last.started_at if last else None,
                last_error=last.error if last else None,
                last_valued=len(last.valued) if last else 0,
                last_skipped=len(last.skipped) if last else 0,
            )


def build_poller(
    config: WatchConfig,
    notify: bool = True,
    instruments: Optional[InstrumentTable] = None,
    console: Callable[[str], None] = print,
) -> PnlPoller:
    """Wire the RPC sources, Telegram sink and scheduler from ``config``."""
    rpc = SolanaRpcClient(config.rpc_url, timeout=config.http_timeout_seconds)
    positions = PositionSource(rpc)
    oracles = OracleSource(rpc)
    table = instruments if instruments is not None else InstrumentTable()

    notifier: Optional[TelegramNotifier] = None
    if notify and config.telegram_bot_token:
        notifier = TelegramNotifier(
            config.telegram_bot_token,
            config.telegram_allowed_users,
            timeout=config.http_timeout_seconds,
        )

    def cycle() -> CycleResult:
        return run_cycle(config.wallet_address, positions, oracles, table)

    return PnlPoller(cycle, config.poll_interval_seconds, notifier=notifier, console=console)
