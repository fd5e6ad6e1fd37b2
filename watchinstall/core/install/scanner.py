from __future__ import annotations

"""
Resource scanning.

Scanning is the single source of truth for "what exists now": every cycle
walks the repository again, nothing is carried over from a previous scan.
Any read failure aborts the scan with ScanError; a partial view is never
returned because reconciling it would uninstall resources that still exist.
"""

import functools
from typing import Dict, Iterable, List, Sequence

from watchinstall.core.errors import ScanError
from watchinstall.core.install.classifier import PathClassifier
from watchinstall.core.install.models import CandidateResource
from watchinstall.core.repository.base import Repository, normalize_repo_path


DEFAULT_SEARCH_PATHS = ("/libs", "/apps")


class ResourceScanner:
    def __init__(self, *, repository: Repository, search_paths: Sequence[str] = DEFAULT_SEARCH_PATHS, logger=None):
        self.repository = repository
        self.search_paths = [normalize_repo_path(p) for p in search_paths]
        self.logger = logger

    def _children(self, path: str):
        try:
            return self.repository.children(path)
        except OSError as e:
            raise ScanError(f"Unable to list {path}: {e}", path=path) from e

    def find_watch_roots(self, classifier: PathClassifier) -> List[str]:
        """
        Walk every search path and return the folders matching the watch pattern, sorted.
        """
        try:
            available = self.repository.exists("/")
        except OSError as e:
            raise ScanError(f"Repository unavailable: {e}") from e
        if not available:
            raise ScanError("Repository unavailable.")

        roots = set()
        for base in self.search_paths:
            try:
                if not self.repository.exists(base):
                    continue
            except OSError as e:
                raise ScanError(f"Unable to read {base}: {e}", path=base) from e
            stack = [base]
            while stack:
                folder = stack.pop()
                if classifier.is_watch_root(folder):
                    roots.add(folder)
                for entry in self._children(folder):
                    if entry.is_folder:
                        stack.append(entry.path)
        return sorted(roots)

    def scan(self, roots: Iterable[str], classifier: PathClassifier) -> Dict[str, CandidateResource]:
        """
        Return all eligible resources directly under the given watch roots, keyed by uri.
        """
        active = {normalize_repo_path(r) for r in roots}
        out: Dict[str, CandidateResource] = {}
        for root in sorted(active):
            for entry in self._children(root):
                if entry.is_folder:
                    continue
                uri = classifier.classify(entry.path, roots=active)
                if uri is None or uri in out:
                    continue
                try:
                    fingerprint = self.repository.last_modified(uri)
                except OSError as e:
                    raise ScanError(f"Unable to read modification time of {uri}: {e}", uri=uri) from e
                if fingerprint is None:
                    raise ScanError(f"No modification time for {uri}.", uri=uri)
                out[uri] = CandidateResource(uri=uri, fingerprint=int(fingerprint), payload=functools.partial(self.repository.open, uri))
        if self.logger:
            self.logger.debug(f"Scanned {len(active)} watch root(s), {len(out)} candidate resource(s)")
        return out
