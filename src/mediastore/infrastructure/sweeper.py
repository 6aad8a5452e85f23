"""Background expiry of reservations whose TTL has passed.

Reads already ignore expired holds; the sweeper only brings stored state
in line so listings and audits stop showing them as ACTIVE.
"""

from __future__ import annotations

import threading

import structlog

from mediastore.domain.service.stock_reservation_ledger import StockReservationLedger

logger = structlog.get_logger(__name__)


class ReservationSweeper:

    def __init__(self, ledger: StockReservationLedger, interval_seconds: float = 60.0) -> None:
        if interval_seconds <= 0:
            raise ValueError("Sweep interval must be positive")
        self._ledger = ledger
        self._interval = interval_seconds
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="reservation-sweeper", daemon=True
        )
        self._thread.start()
        logger.info("sweeper.started", interval_seconds=self._interval)

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("sweeper.stopped")

    def run_once(self) -> int:
        return self._ledger.cleanup_expired_reservations()

    def _run(self) -> None:
        while not self._stop.wait(self._interval):
            try:
                self.run_once()
            except Exception:
                # A failed pass is retried on the next tick; the thread stays up.
                logger.warning("sweeper.pass_failed", exc_info=True)
