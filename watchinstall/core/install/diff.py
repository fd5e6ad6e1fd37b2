from __future__ import annotations

from typing import Collection, List, Mapping

from watchinstall.core.install.classifier import watch_root_of
from watchinstall.core.install.installed import InstalledStateView
from watchinstall.core.install.models import CandidateResource, InstallOrUpdate, ReconciliationAction, Uninstall


class DiffEngine:
    """
    Desired (scanned) vs actual (installed) state -> ordered action list.

    Ordering is part of the contract:
    1. InstallOrUpdate for new/changed resources, sorted by uri
    2. Uninstall for installed uris without a scanned resource, sorted by uri

    On a full reconcile every installed uri is checked. Otherwise only uris
    inside an active watch root are; uris outside the current scope are left
    for the next full reconcile.
    """

    def diff(
        self,
        scanned: Mapping[str, CandidateResource],
        installed: InstalledStateView,
        *,
        full_reconcile: bool,
        active_roots: Collection[str] = (),
    ) -> List[ReconciliationAction]:
        actions: List[ReconciliationAction] = []

        for uri in sorted(scanned):
            res = scanned[uri]
            current = installed.installed_fingerprint(uri)
            if current is None or current != res.fingerprint:
                actions.append(InstallOrUpdate.from_resource(res))

        roots = frozenset(active_roots)
        for uri in sorted(installed.installed_uris()):
            if uri in scanned:
                continue
            if not full_reconcile and watch_root_of(uri, roots) is None:
                continue
            actions.append(Uninstall(uri=uri))

        return actions
