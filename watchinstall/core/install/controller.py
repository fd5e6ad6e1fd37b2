from __future__ import annotations

"""
Controller boundary: the runtime that actually installs and removes resources.

`Controller` is the protocol the reconciliation cycle consumes.
`LocalController` is a file-backed runtime: payloads are validated and copied
under an install directory, installed records are kept in a JSON registry.
"""

import hashlib
import io
import os
import posixpath
import tempfile
import threading
import time
import zipfile
from typing import BinaryIO, Dict, Iterable, List, Protocol, Set

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from watchinstall.core.config.io import atomic_write_json, read_json_file
from watchinstall.core.errors import InstallerError


NOT_INSTALLED = -1

ARCHIVE_EXTENSIONS = frozenset({"jar", "dp"})
CONFIG_EXTENSIONS = frozenset({"cfg", "properties"})


class Controller(Protocol):
    def get_installed_uris(self) -> Iterable[str]:
        ...

    def get_last_modified(self, uri: str) -> int:
        """Installed fingerprint for uri, NOT_INSTALLED when unknown."""
        ...

    def install_or_update(self, uri: str, fingerprint: int, payload: BinaryIO) -> None:
        ...

    def uninstall(self, uri: str) -> None:
        ...


class InstalledRecord(BaseModel):
    model_config = ConfigDict(extra="forbid")

    uri: str = Field(min_length=1)
    fingerprint: int
    installed_at: str = ""
    stored_as: str = ""
    sha256: str = ""
    size: int = 0


class InstalledRegistryFile(BaseModel):
    model_config = ConfigDict(extra="forbid")

    schema_version: int = Field(default=1, ge=1, le=10)
    records: Dict[str, InstalledRecord] = Field(default_factory=dict)


def _iso_now() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


def validate_payload(uri: str, data: bytes) -> None:
    """
    Reject payloads the runtime could not activate.
    Raises InstallerError.
    """
    ext = posixpath.splitext(uri)[1].lower().lstrip(".")
    if ext in ARCHIVE_EXTENSIONS:
        if not data or not zipfile.is_zipfile(io.BytesIO(data)):
            raise InstallerError("Payload is not a valid archive.", uri=uri, extension=ext)
        return
    if ext in CONFIG_EXTENSIONS:
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InstallerError("Configuration payload is not UTF-8 text.", uri=uri) from e
        for n, line in enumerate(text.splitlines(), start=1):
            s = line.strip()
            if not s or s.startswith(("#", "!")):
                continue
            if "=" not in s and ":" not in s:
                raise InstallerError(f"Configuration line {n} is not a key=value pair.", uri=uri, line=n)
        return
    raise InstallerError("Unsupported resource type.", uri=uri, extension=ext)


class LocalController:
    def __init__(self, *, install_dir: str, registry_path: str, logger=None):
        self.install_dir = os.path.abspath(str(install_dir))
        self.registry_path = str(registry_path)
        self.logger = logger
        self._lock = threading.Lock()

    # ---- registry ----
    def _load(self) -> InstalledRegistryFile:
        rr = read_json_file(self.registry_path)
        if not rr.ok:
            if rr.error == "missing":
                return InstalledRegistryFile()
            # an unreadable registry is not an empty one
            raise InstallerError("Installed registry unreadable.", path=self.registry_path, reason=str(rr.error)[:200])
        try:
            return InstalledRegistryFile.model_validate(rr.data)
        except ValidationError as e:
            raise InstallerError("Installed registry invalid.", path=self.registry_path, reason=str(e)[:200]) from e

    def _save(self, reg: InstalledRegistryFile) -> None:
        atomic_write_json(self.registry_path, reg.model_dump(mode="json"))

    def _stored_path(self, uri: str) -> str:
        rel = posixpath.normpath("/" + uri).lstrip("/")
        return os.path.join(self.install_dir, *rel.split("/"))

    def records(self) -> List[InstalledRecord]:
        with self._lock:
            reg = self._load()
        return [reg.records[k] for k in sorted(reg.records)]

    # ---- Controller protocol ----
    def get_installed_uris(self) -> Set[str]:
        with self._lock:
            return set(self._load().records)

    def get_last_modified(self, uri: str) -> int:
        with self._lock:
            rec = self._load().records.get(uri)
        return int(rec.fingerprint) if rec is not None else NOT_INSTALLED

    def install_or_update(self, uri: str, fingerprint: int, payload: BinaryIO) -> None:
        data = payload.read()
        validate_payload(uri, data)
        dest = self._stored_path(uri)
        with self._lock:
            reg = self._load()
            updating = uri in reg.records
            os.makedirs(os.path.dirname(dest), exist_ok=True)
            fd, tmp = tempfile.mkstemp(prefix=".tmp_", dir=os.path.dirname(dest))
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                os.replace(tmp, dest)
            finally:
                if os.path.exists(tmp):
                    os.remove(tmp)
            reg.records[uri] = InstalledRecord(
                uri=uri,
                fingerprint=int(fingerprint),
                installed_at=_iso_now(),
                stored_as=os.path.relpath(dest, self.install_dir).replace("\\", "/"),
                sha256=hashlib.sha256(data).hexdigest(),
                size=len(data),
            )
            self._save(reg)
        if self.logger:
            self.logger.info(f"{'Updated' if updating else 'Installed'} {uri} (fingerprint={fingerprint})")

    def uninstall(self, uri: str) -> None:
        with self._lock:
            reg = self._load()
            rec = reg.records.pop(uri, None)
            if rec is None:
                raise InstallerError("Resource is not installed.", uri=uri)
            dest = self._stored_path(uri)
            if os.path.isfile(dest):
                os.remove(dest)
            self._save(reg)
        if self.logger:
            self.logger.info(f"Uninstalled {uri}")
