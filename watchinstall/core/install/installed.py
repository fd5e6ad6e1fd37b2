from __future__ import annotations

from typing import Optional, Set

from watchinstall.core.errors import ScanError
from watchinstall.core.install.controller import NOT_INSTALLED, Controller


class InstalledStateView:
    """
    Read-through view of the Controller's installed set.

    Nothing is cached: the Controller owns install state and may be changed
    externally, so every call re-queries it. Build one per cycle.
    A Controller that cannot answer makes the cycle's view inconsistent,
    which is reported as a ScanError so nothing gets reconciled.
    """

    def __init__(self, controller: Controller):
        self.controller = controller

    def installed_uris(self) -> Set[str]:
        try:
            return {str(u) for u in (self.controller.get_installed_uris() or ())}
        except Exception as e:  # noqa: BLE001
            raise ScanError(f"Installed state unavailable: {str(e)[:200]}", error_type=type(e).__name__) from e

    def installed_fingerprint(self, uri: str) -> Optional[int]:
        try:
            value = self.controller.get_last_modified(uri)
        except Exception as e:  # noqa: BLE001
            raise ScanError(f"Installed state unavailable for {uri}: {str(e)[:200]}", uri=uri, error_type=type(e).__name__) from e
        if value is None:
            return None
        value = int(value)
        return None if value <= NOT_INSTALLED else value
