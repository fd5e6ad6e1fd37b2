from __future__ import annotations

"""
Path classification: which repository paths are installable resources.

Rules:
- the final segment must not start with "_" or "." (disabled/hidden marker)
- the extension must be one of the installable types
- the containing folder must be a watch root, i.e. its full path matches the
  configured folder pattern
"""

import posixpath
import re
from typing import Collection, FrozenSet, Iterable, Optional, Pattern, Union

from watchinstall.core.errors import ConfigurationError
from watchinstall.core.repository.base import normalize_repo_path


DEFAULT_FOLDER_PATTERN = ".*/install$"
# archives (bundles), raw configs, deployment packages
DEFAULT_EXTENSIONS = ("jar", "cfg", "properties", "dp")
IGNORED_PREFIXES = ("_", ".")


def normalize_extensions(extensions: Iterable[str]) -> FrozenSet[str]:
    return frozenset(str(e or "").strip().lower().lstrip(".") for e in extensions if str(e or "").strip().lstrip("."))


def compile_folder_pattern(pattern: Union[str, Pattern[str]]) -> Pattern[str]:
    if isinstance(pattern, re.Pattern):
        return pattern
    p = str(pattern or "")
    if not p.strip():
        raise ConfigurationError("Watch folder pattern is empty.", pattern=p)
    try:
        return re.compile(p)
    except re.error as e:
        raise ConfigurationError(f"Watch folder pattern is not a valid regular expression: {e}", pattern=p) from e


def watch_root_of(path: str, roots: Collection[str]) -> Optional[str]:
    """Return the watch root containing path (its parent folder), if active."""
    parent = posixpath.dirname(normalize_repo_path(path))
    return parent if parent in roots else None


class PathClassifier:
    """
    Immutable once built: a scope change builds a new classifier, so a cycle
    holding a reference keeps seeing one consistent pattern.
    """

    def __init__(self, pattern: Union[str, Pattern[str]] = DEFAULT_FOLDER_PATTERN, extensions: Iterable[str] = DEFAULT_EXTENSIONS):
        self._regex = compile_folder_pattern(pattern)
        self.extensions = normalize_extensions(extensions)

    @property
    def pattern(self) -> str:
        return self._regex.pattern

    def is_watch_root(self, folder_path: str) -> bool:
        return self._regex.fullmatch(normalize_repo_path(folder_path)) is not None

    def is_candidate_name(self, name: str) -> bool:
        if not name or name.startswith(IGNORED_PREFIXES):
            return False
        _, dot, ext = name.rpartition(".")
        if not dot:
            return False
        return ext.lower() in self.extensions

    def classify(self, path: str, roots: Optional[Collection[str]] = None) -> Optional[str]:
        """
        Return the uri if path is an eligible resource, else None (ignored).

        When roots is given (the watch roots found by the current scan) the
        folder check is a set lookup instead of a regex match per file.
        """
        uri = normalize_repo_path(path)
        if not self.is_candidate_name(posixpath.basename(uri)):
            return None
        parent = posixpath.dirname(uri)
        if roots is not None:
            return uri if parent in roots else None
        return uri if self.is_watch_root(parent) else None
