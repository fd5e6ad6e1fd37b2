from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Optional

from watchinstall.core.errors import ScanError
from watchinstall.core.install.models import CycleReport
from watchinstall.core.install.scope import WatchScopeManager


@dataclass
class SchedulerConfig:
    enabled: bool = True
    interval_seconds: float = 5.0


class ReconcileScheduler:
    """
    External trigger for reconciliation: one full activation at start, then a
    steady-state cycle every interval, or sooner when trigger() is called
    (e.g. from a repository change notification).

    Cycles are never interrupted: stop() lets the running cycle finish.
    """

    def __init__(self, *, scope: WatchScopeManager, cfg: SchedulerConfig, logger: Any = None):
        self.scope = scope
        self.cfg = cfg
        self.logger = logger
        self._stop = threading.Event()
        self._wake = threading.Event()
        self._thread = threading.Thread(target=self._loop, name="reconcile-scheduler", daemon=True)
        self.last_report: Optional[CycleReport] = None
        self.last_error: Optional[ScanError] = None
        self.cycles_run = 0

    def start(self) -> None:
        if not self.cfg.enabled:
            return
        if self._thread.is_alive():
            return
        self._stop.clear()
        self._thread.start()

    def stop(self, timeout: float = 30.0) -> None:
        self._stop.set()
        self._wake.set()
        if self._thread.is_alive():
            self._thread.join(timeout=timeout)

    def trigger(self) -> None:
        self._wake.set()

    def run_once(self) -> Optional[CycleReport]:
        """
        Run one cycle now. Scan failures are logged and reported via last_error.
        """
        try:
            report = self.scope.run_cycle()
        except ScanError as e:
            self.last_error = e
            if self.logger:
                self.logger.error(f"Reconciliation skipped: {e.user_message}")
            return None
        self.last_error = None
        self.last_report = report
        self.cycles_run += 1
        if self.logger:
            for failure in report.failed:
                self.logger.warning(f"[{report.trace_id}] {failure.action.value} {failure.uri}: {failure.error.user_message}")
        return report

    def _loop(self) -> None:
        interval = max(0.1, float(self.cfg.interval_seconds))
        while not self._stop.is_set():
            try:
                self.run_once()
            except Exception as e:  # noqa: BLE001
                if self.logger:
                    self.logger.exception(f"Reconciliation cycle crashed: {e}")
            self._wake.wait(interval)
            self._wake.clear()
