"""
Periodic scanning for pluginrepo.

One daemon thread runs the scan task, then waits out the interval in
short ticks so that stop() returns within about one tick. A scan that is
already running is never interrupted; stopping only prevents the next one.
"""

import threading
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class ScanScheduler:
    """
    Runs ``task`` every ``interval_seconds`` on a background thread.

    Example:
        scheduler = ScanScheduler(engine.reconcile_and_process)
        scheduler.start(900)
        ...
        scheduler.stop()
    """

    def __init__(self, task: Callable[[], object], tick_seconds: float = 1.0):
        self.task = task
        self.tick_seconds = tick_seconds
        self.interval_seconds: float = 0
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._thread is not None and self._thread.is_alive()

    def start(self, interval_seconds: float) -> bool:
        """
        Start the worker.

        Returns:
            False if a worker is already running (nothing is started)
        """
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                logger.warning("Periodic scan already running")
                return False

            self.interval_seconds = max(0, interval_seconds)
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._run, name="pluginrepo-scan", daemon=True
            )
            self._thread.start()

        logger.info(f"Started periodic scan every {self.interval_seconds}s")
        return True

    def stop(self, timeout: Optional[float] = None) -> None:
        """Signal the worker and wait for it. Safe to call when stopped."""
        with self._lock:
            thread = self._thread
            self._stop_event.set()

        if thread is None:
            return
        if thread is not threading.current_thread():
            thread.join(timeout)

        with self._lock:
            if self._thread is thread and not thread.is_alive():
                self._thread = None
        logger.info("Stopped periodic scan")

    def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.task()
            except Exception as e:
                logger.exception(f"Periodic scan failed: {e}")

            # At least one tick between cycles, even with a zero interval
            waited = 0.0
            while True:
                if self._stop_event.wait(self.tick_seconds):
                    return
                waited += self.tick_seconds
                if waited >= self.interval_seconds:
                    break
