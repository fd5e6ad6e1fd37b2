from __future__ import annotations

"""
Cycle-scoped value objects: scanned resources, actions, and the cycle report.
None of these are persisted or cached across cycles.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, BinaryIO, Callable, ClassVar, Dict, List, Union

from watchinstall.core.errors import WatchInstallError


PayloadOpener = Callable[[], BinaryIO]


class ActionKind(str, Enum):
    INSTALL_OR_UPDATE = "install_or_update"
    UNINSTALL = "uninstall"


@dataclass(frozen=True)
class CandidateResource:
    uri: str
    fingerprint: int
    payload: PayloadOpener = field(compare=False, repr=False)

    def open(self) -> BinaryIO:
        return self.payload()


@dataclass(frozen=True)
class InstallOrUpdate:
    kind: ClassVar[ActionKind] = ActionKind.INSTALL_OR_UPDATE

    uri: str
    fingerprint: int
    payload: PayloadOpener = field(compare=False, repr=False)

    @classmethod
    def from_resource(cls, res: CandidateResource) -> "InstallOrUpdate":
        return cls(uri=res.uri, fingerprint=res.fingerprint, payload=res.payload)


@dataclass(frozen=True)
class Uninstall:
    kind: ClassVar[ActionKind] = ActionKind.UNINSTALL

    uri: str


ReconciliationAction = Union[InstallOrUpdate, Uninstall]


@dataclass(frozen=True)
class ActionFailure:
    uri: str
    action: ActionKind
    error: WatchInstallError

    def to_dict(self) -> Dict[str, Any]:
        return {"uri": self.uri, "action": self.action.value, "error": self.error.to_dict()}


@dataclass
class CycleReport:
    full_reconcile: bool = False
    pattern: str = ""
    trace_id: str = ""
    planned: int = 0
    applied: int = 0
    failed: List[ActionFailure] = field(default_factory=list)
    applied_actions: List[ReconciliationAction] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    def failed_uris(self) -> List[str]:
        return [f.uri for f in self.failed]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trace_id": self.trace_id,
            "full_reconcile": bool(self.full_reconcile),
            "pattern": self.pattern,
            "planned": int(self.planned),
            "applied": int(self.applied),
            "ok": self.ok,
            "applied_actions": [{"uri": a.uri, "action": a.kind.value} for a in self.applied_actions],
            "failed": [f.to_dict() for f in self.failed],
        }
