from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import date, datetime, timedelta

from sqlalchemy.orm import Session

from warehouse_ledger.db import session_scope
from warehouse_ledger.services.alert_dispatcher import AlertDispatcher
from warehouse_ledger.services.expiry_scan_service import ScanResult, run_expiry_scan

logger = logging.getLogger(__name__)


def next_run_after(now: datetime, *, hour: int, minute: int) -> datetime:
    candidate = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if candidate <= now:
        candidate += timedelta(days=1)
    return candidate


class ExpiryScanScheduler:
    """
    Daily in-process timer for the expiry scan. Each run completes before the next
    fire time is computed, and run_now() refuses to start while another run holds
    the run lock, so manual and timed runs never overlap. Runs from other processes
    are kept out by the lease taken inside run_expiry_scan.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        dispatcher: AlertDispatcher,
        *,
        hour: int,
        minute: int,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._session_factory = session_factory
        self._dispatcher = dispatcher
        self._hour = hour
        self._minute = minute
        self._clock = clock
        self._run_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    def run_now(self, today: date | None = None) -> ScanResult | None:
        if not self._run_lock.acquire(blocking=False):
            logger.warning('Expiry scan already in progress; skipping overlapping run')
            return None
        try:
            with session_scope(self._session_factory) as db:
                return run_expiry_scan(db, dispatcher=self._dispatcher, today=today or self._clock().date())
        finally:
            self._run_lock.release()

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, name='expiry-scan-scheduler', daemon=True)
        self._thread.start()
        logger.info('Expiry scan scheduler started (daily at %02d:%02d)', self._hour, self._minute)

    def stop(self, timeout: float = 30.0) -> None:
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        logger.info('Expiry scan scheduler stopped')

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run_loop(self) -> None:
        fire_at = next_run_after(self._clock(), hour=self._hour, minute=self._minute)
        while not self._stop_event.is_set():
            wait_seconds = max((fire_at - self._clock()).total_seconds(), 0.0)
            if self._stop_event.wait(timeout=wait_seconds):
                break
            try:
                self.run_now(today=fire_at.date())
            except Exception:
                logger.exception('Expiry scan run failed')
            fire_at = next_run_after(max(self._clock(), fire_at), hour=self._hour, minute=self._minute)
