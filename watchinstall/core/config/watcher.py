from __future__ import annotations

import os
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict


@dataclass
class WatcherConfig:
    enabled: bool = False
    debounce_ms: int = 500
    poll_interval_ms: int = 500


class ConfigWatcher:
    """
    Debounced polling watcher for config/*.json.
    """

    def __init__(self, *, config_dir: str, cfg: WatcherConfig, on_change: Callable[[], object], logger=None):
        self.config_dir = config_dir
        self.cfg = cfg
        self.on_change = on_change
        self.logger = logger
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._poll_loop, name="config-watcher", daemon=True)
        self._last_mtimes: Dict[str, float] = {}
        self._last_fire = 0.0

    def start(self) -> None:
        if not self.cfg.enabled:
            return
        if self._thread.is_alive():
            return
        self._stop.clear()
        self._last_mtimes = self._snapshot()
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread.is_alive():
            self._thread.join(timeout=2.0)

    def poll_once(self) -> bool:
        """
        Compare mtimes against the previous snapshot; fire on_change if changed and not debounced.
        """
        current = self._snapshot()
        changed = current != self._last_mtimes
        self._last_mtimes = current
        now = time.time()
        debounce = max(0.0, float(self.cfg.debounce_ms) / 1000.0)
        if changed and (now - self._last_fire) >= debounce:
            self._last_fire = now
            self.on_change()
            return True
        return False

    def _snapshot(self) -> Dict[str, float]:
        out: Dict[str, float] = {}
        if not os.path.isdir(self.config_dir):
            return out
        for name in os.listdir(self.config_dir):
            if not name.endswith(".json"):
                continue
            path = os.path.join(self.config_dir, name)
            if os.path.isfile(path):
                out[path] = os.path.getmtime(path)
        return out

    def _poll_loop(self) -> None:
        interval = max(0.1, float(self.cfg.poll_interval_ms) / 1000.0)
        while not self._stop.is_set():
            try:
                self.poll_once()
            except Exception as e:  # noqa: BLE001
                if self.logger:
                    self.logger.warning(f"Config watcher error: {e}")
            self._stop.wait(interval)
