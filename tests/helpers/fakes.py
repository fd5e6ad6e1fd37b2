from __future__ import annotations

import io
import posixpath
from dataclasses import dataclass, field
from typing import BinaryIO, Dict, List, Optional, Set, Tuple

from watchinstall.core.errors import InstallerError
from watchinstall.core.install.controller import NOT_INSTALLED
from watchinstall.core.repository.base import RepositoryEntry, normalize_repo_path


class FakeLogger:
    def __init__(self) -> None:
        self.lines: List[Tuple[str, str]] = []

    def debug(self, msg, *_a, **_k):  # noqa: ANN001
        self.lines.append(("debug", str(msg)))

    def info(self, msg, *_a, **_k):  # noqa: ANN001
        self.lines.append(("info", str(msg)))

    def warning(self, msg, *_a, **_k):  # noqa: ANN001
        self.lines.append(("warning", str(msg)))

    def error(self, msg, *_a, **_k):  # noqa: ANN001
        self.lines.append(("error", str(msg)))

    def exception(self, msg, *_a, **_k):  # noqa: ANN001
        self.lines.append(("exception", str(msg)))


class FakeController:
    """
    Controller double with an ordered call log.

    `calls` holds mutating calls only, in order:
      ("install_or_update", uri, fingerprint) / ("uninstall", uri)
    `fail_on` holds (operation, uri) pairs that raise InstallerError.
    Successful calls update `installed` the way a real runtime would.
    """

    def __init__(self, installed: Optional[Dict[str, int]] = None):
        self.installed: Dict[str, int] = dict(installed or {})
        self.calls: List[Tuple] = []
        self.queries: List[Tuple[str, str]] = []
        self.fail_on: Set[Tuple[str, str]] = set()
        self.payloads: Dict[str, bytes] = {}

    def get_installed_uris(self) -> Set[str]:
        self.queries.append(("get_installed_uris", ""))
        return set(self.installed)

    def get_last_modified(self, uri: str) -> int:
        self.queries.append(("get_last_modified", uri))
        return self.installed.get(uri, NOT_INSTALLED)

    def install_or_update(self, uri: str, fingerprint: int, payload: BinaryIO) -> None:
        self.calls.append(("install_or_update", uri, fingerprint))
        if ("install_or_update", uri) in self.fail_on:
            raise InstallerError("Fake installer exception for testing", uri=uri)
        self.payloads[uri] = payload.read()
        self.installed[uri] = int(fingerprint)

    def uninstall(self, uri: str) -> None:
        self.calls.append(("uninstall", uri))
        if ("uninstall", uri) in self.fail_on:
            raise InstallerError("Fake installer exception for testing", uri=uri)
        if uri not in self.installed:
            raise InstallerError("Resource is not installed.", uri=uri)
        del self.installed[uri]

    def installs(self) -> List[str]:
        return [c[1] for c in self.calls if c[0] == "install_or_update"]

    def uninstalls(self) -> List[str]:
        return [c[1] for c in self.calls if c[0] == "uninstall"]

    def reset_calls(self) -> None:
        self.calls.clear()
        self.queries.clear()


@dataclass
class FakeRepository:
    """
    In-memory repository: files are {path: (data, mtime_ms)}; folders are implied by file
    paths plus `folders`. `unreadable` folders raise OSError on listing; files in
    `no_mtime` report no modification time.
    """

    files: Dict[str, Tuple[bytes, Optional[int]]] = field(default_factory=dict)
    folders: Set[str] = field(default_factory=set)
    unreadable: Set[str] = field(default_factory=set)
    no_mtime: Set[str] = field(default_factory=set)
    available: bool = True

    def put(self, path: str, data: bytes = b"hello", mtime_ms: int = 1_700_000_000_000) -> str:
        p = normalize_repo_path(path)
        self.files[p] = (data, mtime_ms)
        return p

    def remove(self, path: str) -> None:
        self.files.pop(normalize_repo_path(path), None)

    def _all_folders(self) -> Set[str]:
        out = {"/"}
        for p in list(self.files) + list(self.folders):
            cur = posixpath.dirname(p) if p in self.files else p
            while cur and cur != "/":
                out.add(cur)
                cur = posixpath.dirname(cur)
        return out

    def children(self, path: str) -> List[RepositoryEntry]:
        base = normalize_repo_path(path)
        if base in self.unreadable:
            raise OSError(f"unreadable: {base}")
        folders = self._all_folders()
        out: Dict[str, RepositoryEntry] = {}
        for f in folders:
            if f != "/" and posixpath.dirname(f) == base:
                out[f] = RepositoryEntry(path=f, is_folder=True)
        for p in self.files:
            if posixpath.dirname(p) == base:
                out[p] = RepositoryEntry(path=p, is_folder=False)
        return [out[k] for k in sorted(out)]

    def exists(self, path: str) -> bool:
        if not self.available:
            return False
        p = normalize_repo_path(path)
        return p in self.files or p in self._all_folders()

    def last_modified(self, path: str) -> Optional[int]:
        p = normalize_repo_path(path)
        if p in self.no_mtime or p not in self.files:
            return None
        return self.files[p][1]

    def open(self, path: str) -> BinaryIO:
        p = normalize_repo_path(path)
        if p not in self.files:
            raise FileNotFoundError(p)
        return io.BytesIO(self.files[p][0])
