"""
Reconciliation engine: keeps the Controller's installed set in sync with the
installable resources found under the repository's watch folders.

Pipeline per cycle: ResourceScanner -> DiffEngine -> ReconciliationCycle,
driven by WatchScopeManager (activate / reconfigure / run_cycle).
"""

from watchinstall.core.install.classifier import PathClassifier
from watchinstall.core.install.controller import NOT_INSTALLED, Controller, LocalController
from watchinstall.core.install.cycle import ReconciliationCycle
from watchinstall.core.install.diff import DiffEngine
from watchinstall.core.install.installed import InstalledStateView
from watchinstall.core.install.models import CandidateResource, CycleReport, InstallOrUpdate, Uninstall
from watchinstall.core.install.scanner import ResourceScanner
from watchinstall.core.install.scope import ScopeState, WatchScopeManager

__all__ = [
    "NOT_INSTALLED",
    "CandidateResource",
    "Controller",
    "CycleReport",
    "DiffEngine",
    "InstallOrUpdate",
    "InstalledStateView",
    "LocalController",
    "PathClassifier",
    "ReconciliationCycle",
    "ResourceScanner",
    "ScopeState",
    "Uninstall",
    "WatchScopeManager",
]
