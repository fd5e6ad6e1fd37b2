from __future__ import annotations

"""
CLI rendering helpers for reconciliation reports and installed state.
Stable, testable line output; the CLI loop itself stays trivial.
"""

from typing import Any, List

from watchinstall.core.install.models import CycleReport


def report_lines(report: CycleReport) -> List[str]:
    """
    Columns: uri | action | outcome | detail
    """
    lines = [
        f"cycle {report.trace_id} full={str(bool(report.full_reconcile)).lower()} pattern={report.pattern} "
        f"planned={report.planned} applied={report.applied} failed={len(report.failed)}",
        "uri | action | outcome | detail",
    ]
    for action in report.applied_actions:
        detail = f"fingerprint={action.fingerprint}" if hasattr(action, "fingerprint") else ""
        lines.append(f"{action.uri} | {action.kind.value} | ok | {detail}")
    for failure in report.failed:
        lines.append(f"{failure.uri} | {failure.action.value} | failed | {failure.error.user_message}")
    return lines


def installed_lines(*, controller: Any) -> List[str]:
    """
    Columns: uri | fingerprint | installed_at | sha256 (short)
    """
    lines = ["uri | fingerprint | installed_at | sha256"]
    for rec in controller.records():
        lines.append(f"{rec.uri} | {rec.fingerprint} | {rec.installed_at} | {rec.sha256[:12]}")
    return lines
