from __future__ import annotations

"""
One reconciliation pass: scan -> diff -> apply.

Actions are applied strictly in diff order, one at a time. A failing action
is recorded and the pass continues with the next one; it is not retried in
the same pass (the next pass re-diffs and naturally retries).
"""

from typing import Any, Dict, Optional

from watchinstall.core.errors import ScanError, normalize_error
from watchinstall.core.events.models import BaseEvent, EventSeverity, SourceSubsystem
from watchinstall.core.install.classifier import PathClassifier
from watchinstall.core.install.controller import Controller
from watchinstall.core.install.diff import DiffEngine
from watchinstall.core.install.installed import InstalledStateView
from watchinstall.core.install.models import ActionFailure, CycleReport, InstallOrUpdate, ReconciliationAction
from watchinstall.core.install.scanner import ResourceScanner
from watchinstall.core.trace import trace_context


class ReconciliationCycle:
    def __init__(
        self,
        *,
        scanner: ResourceScanner,
        controller: Controller,
        classifier: Optional[PathClassifier] = None,
        diff_engine: Optional[DiffEngine] = None,
        event_bus: Any = None,
        logger: Any = None,
    ):
        self.scanner = scanner
        self.controller = controller
        self.classifier = classifier or PathClassifier()
        self.diff_engine = diff_engine or DiffEngine()
        self.event_bus = event_bus
        self.logger = logger

    # ---- helpers ----
    def _emit(self, trace_id: str, event_type: str, payload: Dict[str, Any], *, severity: EventSeverity = EventSeverity.INFO) -> None:
        if self.event_bus is None:
            return
        try:
            self.event_bus.publish_nowait(
                BaseEvent(
                    event_type=event_type,
                    trace_id=trace_id,
                    source_subsystem=SourceSubsystem.cycle,
                    severity=severity,
                    payload=payload,
                )
            )
        except Exception as e:  # noqa: BLE001
            if self.logger:
                self.logger.warning(f"[{trace_id}] unable to publish {event_type}: {e}")

    def _apply(self, action: ReconciliationAction) -> None:
        if isinstance(action, InstallOrUpdate):
            with action.payload() as stream:
                self.controller.install_or_update(action.uri, action.fingerprint, stream)
        else:
            self.controller.uninstall(action.uri)

    # ---- public API ----
    def run(self, *, full_reconcile: bool = False, classifier: Optional[PathClassifier] = None, trace_id: Optional[str] = None) -> CycleReport:
        """
        Run one pass. Raises ScanError (nothing applied) if the view could not be built;
        Controller failures while applying are recorded in the returned report.
        """
        cls = classifier or self.classifier
        with trace_context(trace_id) as tid:
            self._emit(tid, "install.cycle_started", {"full_reconcile": bool(full_reconcile), "pattern": cls.pattern})
            try:
                roots = self.scanner.find_watch_roots(cls)
                scanned = self.scanner.scan(roots, cls)
                actions = self.diff_engine.diff(
                    scanned,
                    InstalledStateView(self.controller),
                    full_reconcile=full_reconcile,
                    active_roots=roots,
                )
            except ScanError as e:
                if self.logger:
                    self.logger.error(f"[{tid}] scan failed, nothing reconciled: {e.user_message}")
                self._emit(tid, "install.scan_failed", e.to_dict(), severity=EventSeverity.ERROR)
                raise

            report = CycleReport(full_reconcile=bool(full_reconcile), pattern=cls.pattern, trace_id=tid, planned=len(actions))
            for action in actions:
                try:
                    self._apply(action)
                except Exception as e:  # noqa: BLE001
                    err = normalize_error(e, uri=action.uri, action=action.kind.value)
                    report.failed.append(ActionFailure(uri=action.uri, action=action.kind, error=err))
                    if self.logger:
                        self.logger.warning(f"[{tid}] {action.kind.value} failed for {action.uri}: {err.user_message}")
                    self._emit(
                        tid,
                        "install.action_failed",
                        {"uri": action.uri, "action": action.kind.value, "error": err.to_dict()},
                        severity=EventSeverity.WARN,
                    )
                    continue
                report.applied += 1
                report.applied_actions.append(action)
                if isinstance(action, InstallOrUpdate):
                    self._emit(tid, "install.installed", {"uri": action.uri, "fingerprint": action.fingerprint})
                else:
                    self._emit(tid, "install.uninstalled", {"uri": action.uri})

            if self.logger:
                self.logger.info(
                    f"[{tid}] cycle complete (full={bool(full_reconcile)}): planned={report.planned} applied={report.applied} failed={len(report.failed)}"
                )
            self._emit(
                tid,
                "install.cycle_completed",
                {"full_reconcile": bool(full_reconcile), "planned": report.planned, "applied": report.applied, "failed": report.failed_uris()},
                severity=EventSeverity.INFO if report.ok else EventSeverity.WARN,
            )
            return report
