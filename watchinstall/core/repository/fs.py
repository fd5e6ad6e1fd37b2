from __future__ import annotations

"""
Filesystem-backed repository.

Maps repository paths beneath a local directory so that a plain folder tree
can act as the content store (and so tests can drive the engine with tmp_path).
"""

import os
from typing import BinaryIO, List, Optional

from watchinstall.core.repository.base import RepositoryEntry, normalize_repo_path


class FsRepository:
    def __init__(self, root_dir: str):
        self.root_dir = os.path.abspath(str(root_dir))

    def _local(self, path: str) -> str:
        rel = normalize_repo_path(path).lstrip("/")
        local = os.path.abspath(os.path.join(self.root_dir, *rel.split("/"))) if rel else self.root_dir
        if local != self.root_dir and not local.startswith(self.root_dir + os.sep):
            raise ValueError(f"path escapes repository root: {path}")
        return local

    def children(self, path: str) -> List[RepositoryEntry]:
        base = normalize_repo_path(path)
        local = self._local(base)
        out: List[RepositoryEntry] = []
        for name in sorted(os.listdir(local)):
            child_local = os.path.join(local, name)
            child = (base.rstrip("/") + "/" + name) if base != "/" else "/" + name
            out.append(RepositoryEntry(path=child, is_folder=os.path.isdir(child_local)))
        return out

    def exists(self, path: str) -> bool:
        return os.path.exists(self._local(path))

    def last_modified(self, path: str) -> Optional[int]:
        try:
            st = os.stat(self._local(path))
        except FileNotFoundError:
            return None
        return int(st.st_mtime_ns // 1_000_000)

    def open(self, path: str) -> BinaryIO:
        return open(self._local(path), "rb")

    # ---- content helpers (used by tooling and tests) ----
    def write(self, path: str, data: bytes, *, mtime_ms: Optional[int] = None) -> str:
        local = self._local(path)
        os.makedirs(os.path.dirname(local), exist_ok=True)
        with open(local, "wb") as f:
            f.write(data)
        if mtime_ms is not None:
            ns = int(mtime_ms) * 1_000_000
            os.utime(local, ns=(ns, ns))
        return normalize_repo_path(path)

    def delete(self, path: str) -> None:
        local = self._local(path)
        if os.path.isfile(local):
            os.remove(local)
