from __future__ import annotations

"""
Watch scope: the active folder pattern and the cycles that depend on it.

The pattern is the only mutable shared state. Each cycle snapshots the
classifier once at its start, so a concurrent reconfigure only takes effect
at the next cycle boundary. Cycles themselves are serialized.
"""

import threading
from enum import Enum
from typing import Any, Dict, Iterable, Optional

from watchinstall.core.errors import ConfigurationError
from watchinstall.core.events.models import BaseEvent, EventSeverity, SourceSubsystem
from watchinstall.core.install.classifier import DEFAULT_EXTENSIONS, DEFAULT_FOLDER_PATTERN, PathClassifier
from watchinstall.core.install.cycle import ReconciliationCycle
from watchinstall.core.install.models import CycleReport
from watchinstall.core.repository.base import normalize_repo_path


class ScopeState(str, Enum):
    UNCONFIGURED = "UNCONFIGURED"
    ACTIVE = "ACTIVE"


class WatchScopeManager:
    def __init__(
        self,
        *,
        cycle: ReconciliationCycle,
        pattern: str = DEFAULT_FOLDER_PATTERN,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        event_bus: Any = None,
        logger: Any = None,
    ):
        self.cycle = cycle
        self.extensions = tuple(extensions)
        self.event_bus = event_bus
        self.logger = logger
        self._classifier = PathClassifier(pattern, self.extensions)
        self._pattern_lock = threading.Lock()
        self._cycle_lock = threading.Lock()
        self._state = ScopeState.UNCONFIGURED
        self.last_report: Optional[CycleReport] = None

    # ---- helpers ----
    def _emit(self, event_type: str, payload: Dict[str, Any], *, severity: EventSeverity = EventSeverity.INFO) -> None:
        if self.event_bus is None:
            return
        try:
            self.event_bus.publish_nowait(
                BaseEvent(event_type=event_type, trace_id="scope", source_subsystem=SourceSubsystem.scope, severity=severity, payload=payload)
            )
        except Exception as e:  # noqa: BLE001
            if self.logger:
                self.logger.warning(f"[scope] unable to publish {event_type}: {e}")

    # ---- public API ----
    @property
    def state(self) -> ScopeState:
        return self._state

    @property
    def pattern(self) -> str:
        return self.snapshot().pattern

    def snapshot(self) -> PathClassifier:
        with self._pattern_lock:
            return self._classifier

    def activate(self, *, trace_id: Optional[str] = None) -> CycleReport:
        """
        Full reconcile against the current pattern: installs in-scope resources and
        uninstalls every installed uri that no longer has a matching resource.
        """
        return self._run(full_reconcile=True, trace_id=trace_id)

    def run_cycle(self, *, trace_id: Optional[str] = None) -> CycleReport:
        """
        Steady-state pass. Before the first activation this is a full reconcile,
        so orphans left from a previous process are always cleaned up once.
        """
        return self._run(full_reconcile=self._state == ScopeState.UNCONFIGURED, trace_id=trace_id)

    def reconfigure(
        self,
        new_pattern: str,
        *,
        extensions: Optional[Iterable[str]] = None,
        search_paths: Optional[Iterable[str]] = None,
        trace_id: Optional[str] = None,
    ) -> CycleReport:
        """
        Replace the active pattern (and optionally the installable extensions and the
        scanner's search paths), then run a full reconcile. All of them are swapped
        together between cycles, so no cycle sees a mix of old and new scope.
        An invalid pattern raises ConfigurationError; the previous pattern stays active
        and no reconciliation is triggered.
        """
        try:
            classifier = PathClassifier(new_pattern, self.extensions if extensions is None else tuple(extensions))
        except ConfigurationError as e:
            if self.logger:
                self.logger.warning(f"[scope] rejected watch pattern {new_pattern!r}: {e.user_message}")
            self._emit("scope.rejected", {"pattern": str(new_pattern), "reason": e.user_message}, severity=EventSeverity.WARN)
            raise
        with self._cycle_lock, self._pattern_lock:
            previous = self._classifier.pattern
            self._classifier = classifier
            if extensions is not None:
                self.extensions = tuple(extensions)
            if search_paths is not None:
                self.cycle.scanner.search_paths = [normalize_repo_path(p) for p in search_paths]
        if self.logger:
            self.logger.info(f"[scope] watch pattern changed: {previous!r} -> {classifier.pattern!r}")
        self._emit("scope.reconfigured", {"previous": previous, "pattern": classifier.pattern})
        return self.activate(trace_id=trace_id)

    def _run(self, *, full_reconcile: bool, trace_id: Optional[str]) -> CycleReport:
        with self._cycle_lock:
            classifier = self.snapshot()
            report = self.cycle.run(full_reconcile=full_reconcile, classifier=classifier, trace_id=trace_id)
            if full_reconcile:
                self._state = ScopeState.ACTIVE
            self.last_report = report
            return report
