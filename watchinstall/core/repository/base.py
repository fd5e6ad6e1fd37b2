from __future__ import annotations

"""
Repository boundary consumed by the scanner.

The repository stores content under POSIX-style absolute paths
("/libs/foo/bar/install/dummy.jar"). The engine only needs to enumerate
children, read a leaf's modification time and open its content.
"""

import posixpath
from dataclasses import dataclass
from typing import BinaryIO, List, Optional, Protocol


@dataclass(frozen=True)
class RepositoryEntry:
    path: str
    is_folder: bool

    @property
    def name(self) -> str:
        return posixpath.basename(self.path)


class Repository(Protocol):
    def children(self, path: str) -> List[RepositoryEntry]:
        """List direct children of a folder. Raises OSError if unreadable."""
        ...

    def exists(self, path: str) -> bool:
        ...

    def last_modified(self, path: str) -> Optional[int]:
        """Modification time in integer milliseconds, or None if unknown."""
        ...

    def open(self, path: str) -> BinaryIO:
        ...


def normalize_repo_path(path: str) -> str:
    """
    Canonical repository path: absolute, '/'-separated, no trailing slash, no '..'.
    """
    p = str(path or "").replace("\\", "/").strip()
    if not p.startswith("/"):
        p = "/" + p
    norm = posixpath.normpath(p)
    # posixpath keeps a leading '//' as-is
    if norm.startswith("//"):
        norm = "/" + norm.lstrip("/")
    return norm
