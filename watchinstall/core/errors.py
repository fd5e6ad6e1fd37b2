from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

from watchinstall.core.events.redaction import redact


class Severity(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class WatchInstallError(Exception):
    code: str
    user_message: str
    severity: Severity = Severity.ERROR
    recoverable: bool = True
    context: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.code)

    def __str__(self) -> str:
        return f"{self.code}: {self.user_message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "user_message": self.user_message,
            "severity": self.severity.value,
            "recoverable": bool(self.recoverable),
            "context": redact(self.context or {}),
        }


# ---- Core types ----
class ScanError(WatchInstallError):
    """
    Repository unreadable or inconsistent during a scan.
    Fatal to the cycle: nothing is reconciled from a partial view.
    """

    def __init__(self, user_message: str = "Repository scan failed.", **ctx: Any):
        super().__init__("scan_error", user_message, severity=Severity.ERROR, recoverable=True, context=ctx)


class InstallerError(WatchInstallError):
    """
    Raised by a Controller when an install/update/uninstall is rejected.
    Recorded per action by the reconciliation cycle, never propagated.
    """

    def __init__(self, user_message: str = "Installer rejected the action.", **ctx: Any):
        super().__init__("installer_error", user_message, severity=Severity.WARN, recoverable=True, context=ctx)


class ConfigurationError(WatchInstallError):
    def __init__(self, user_message: str = "Configuration error.", **ctx: Any):
        super().__init__("configuration_error", user_message, severity=Severity.CRITICAL, recoverable=False, context=ctx)


def normalize_error(exc: BaseException, **ctx: Any) -> WatchInstallError:
    """
    Map any exception raised across the Controller boundary to a WatchInstallError.
    """
    if isinstance(exc, WatchInstallError):
        return exc
    if isinstance(exc, OSError):
        return InstallerError(f"I/O error: {str(exc)[:200]}", error_type=type(exc).__name__, **ctx)
    return InstallerError(f"Unexpected error: {str(exc)[:200]}", error_type=type(exc).__name__, **ctx)
