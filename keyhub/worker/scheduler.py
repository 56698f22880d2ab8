"""
In-process scheduler for the expiration sweep.
"""
import threading
import time
from datetime import datetime
from typing import Any, Callable, Dict, Optional

import structlog

from keyhub.core.config import SweepStatus
from keyhub.core.monitoring import record_sweep_run
from keyhub.worker.sweep import run_sweep

logger = structlog.get_logger(__name__)


class SweepScheduler:
    """
    Runs the sweep every ``interval_seconds`` on a daemon thread.

    Ticks never overlap: a tick that finds the previous one still running is
    skipped. A failed tick is logged and the schedule carries on. State lives
    in memory only and resets with the process.
    """

    def __init__(
        self,
        interval_seconds: float,
        sweep: Callable[[], int] = run_sweep,
        name: str = "expiration-sweep",
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")

        self.interval_seconds = interval_seconds
        self.name = name
        self._sweep = sweep
        self._tick_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

        self.last_run_at: Optional[datetime] = None
        self.last_result: Optional[int] = None
        self.last_error: Optional[str] = None
        self.runs = 0
        self.failures = 0
        self.skipped = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set()

    def start(self) -> None:
        """Start the periodic sweep. Calling it twice is a no-op."""
        if self.running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
        self._thread.start()
        logger.info("Sweep scheduler started", interval_seconds=self.interval_seconds)

    def stop(self, timeout: float = 10.0) -> None:
        """Cancel the schedule and wait for an in-flight tick to finish."""
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        logger.info("Sweep scheduler stopped", runs=self.runs, failures=self.failures)

    def _loop(self) -> None:
        # First tick fires one interval after start
        while not self._stop_event.wait(self.interval_seconds):
            self.tick()

    def tick(self) -> Optional[int]:
        """
        Run one sweep.

        Returns:
            Number of keys deactivated, or None when the tick was skipped or failed
        """
        if not self._tick_lock.acquire(blocking=False):
            self.skipped += 1
            record_sweep_run(SweepStatus.SKIPPED.value)
            logger.warning("Sweep tick skipped, previous tick still running")
            return None

        started = time.time()
        try:
            count = self._sweep()
        except Exception as e:
            self.failures += 1
            self.last_error = str(e)
            record_sweep_run(SweepStatus.FAILURE.value, duration_seconds=time.time() - started)
            logger.error("Sweep tick failed", error=str(e), error_type=e.__class__.__name__)
            return None
        else:
            finished = time.time()
            self.last_result = count
            self.last_error = None
            record_sweep_run(SweepStatus.SUCCESS.value, duration_seconds=finished - started, finished_at=finished)
            logger.info("Sweep tick completed", deactivated=count, duration_seconds=round(finished - started, 3))
            return count
        finally:
            self.runs += 1
            self.last_run_at = datetime.utcnow()
            self._tick_lock.release()

    def status(self) -> Dict[str, Any]:
        return {
            "running": self.running,
            "interval_seconds": self.interval_seconds,
            "runs": self.runs,
            "failures": self.failures,
            "skipped": self.skipped,
            "last_run_at": self.last_run_at.isoformat() if self.last_run_at else None,
            "last_result": self.last_result,
            "last_error": self.last_error,
        }
