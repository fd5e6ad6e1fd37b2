from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from watchinstall.core.config.io import atomic_write_json, read_json_file, recover_from_corrupt, snapshot_last_known_good
from watchinstall.core.config.models import (
    AppConfig,
    AppFileConfig,
    ControllerConfigFile,
    EventsConfigFile,
    SchedulerConfigFile,
    WatchConfigFile,
)
from watchinstall.core.config.paths import ConfigFsPaths
from watchinstall.core.config.watcher import ConfigWatcher, WatcherConfig
from watchinstall.core.errors import ConfigurationError


CONFIG_FILES: Dict[str, Any] = {
    "app.json": AppFileConfig,
    "watch.json": WatchConfigFile,
    "scheduler.json": SchedulerConfigFile,
    "controller.json": ControllerConfigFile,
    "events.json": EventsConfigFile,
}


@dataclass
class DiffResult:
    changed_files: Dict[str, Dict[str, Any]]


ReloadListener = Callable[[AppConfig, AppConfig], None]


class ConfigManager:
    def __init__(self, *, fs: Optional[ConfigFsPaths] = None, logger=None, read_only: bool = False):
        self.fs = fs or ConfigFsPaths(".")
        self.logger = logger
        self.read_only = read_only
        self._cfg: Optional[AppConfig] = None
        self._raw_last: Dict[str, Dict[str, Any]] = {}
        self._watcher: Optional[ConfigWatcher] = None
        self._listeners: List[ReloadListener] = []

    # ---------- public API ----------
    def load_all(self) -> AppConfig:
        os.makedirs(self.fs.config_dir, exist_ok=True)
        os.makedirs(self.fs.backups_dir, exist_ok=True)
        os.makedirs(self.fs.last_known_good_dir, exist_ok=True)

        files = self._ensure_defaults(self._load_raw_files())
        cfg = self._validate_all(files)
        self._cfg = cfg
        self._raw_last = {k: dict(v) for k, v in files.items()}

        if not self.read_only:
            snapshot_last_known_good(self.fs.config_dir, self.fs.last_known_good_dir)
        return cfg

    def get(self) -> AppConfig:
        if self._cfg is None:
            raise ConfigurationError("Config not loaded.")
        return self._cfg

    def read_non_sensitive(self, filename: str) -> Dict[str, Any]:
        """
        Read a single config file from config/ (safe recovery applied).
        """
        path = os.path.join(self.fs.config_dir, filename)
        rr = read_json_file(path)
        if rr.ok:
            return rr.data
        if rr.error and rr.error.startswith("corrupt_json"):
            data, _ = recover_from_corrupt(path, self.fs.backups_dir, self.fs.last_known_good_dir, max_backups=self._max_backups())
            return data
        return {}

    def save_non_sensitive(self, filename: str, data: Dict[str, Any]) -> AppConfig:
        """
        Validate, then atomic write + backups, then reload the whole set.
        Invalid data never reaches disk.
        """
        if self.read_only:
            raise ConfigurationError("Config manager is read-only.")
        if filename not in CONFIG_FILES:
            raise ConfigurationError(f"Unknown config file: {filename}")
        if not isinstance(data, dict):
            raise ConfigurationError("Config data must be an object.")
        try:
            CONFIG_FILES[filename].model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"{filename} invalid: {_first_error(e)}", file=filename) from e
        path = os.path.join(self.fs.config_dir, filename)
        atomic_write_json(path, data, self.fs.backups_dir, max_backups=self._max_backups())
        return self.load_all()

    def add_reload_listener(self, listener: ReloadListener) -> None:
        self._listeners.append(listener)

    def diff_since_last_load(self) -> DiffResult:
        now = self._load_raw_files()
        changed: Dict[str, Dict[str, Any]] = {}
        for k, v in now.items():
            if k not in self._raw_last or self._raw_last[k] != v:
                changed[k] = {"before": self._raw_last.get(k), "after": v}
        return DiffResult(changed_files=changed)

    def reload_if_changed(self) -> bool:
        """
        Hot reload. If the changed set is invalid, keep the previous config.
        """
        if self._cfg is None:
            return False
        diff = self.diff_since_last_load()
        if not diff.changed_files:
            return False
        try:
            raw = self._ensure_defaults(self._load_raw_files())
            cfg = self._validate_all(raw)
        except ConfigurationError as e:
            if self.logger:
                self.logger.warning(f"Config reload rejected (keeping previous): {e.user_message}")
            return False
        previous = self._cfg
        self._cfg = cfg
        self._raw_last = {k: dict(v) for k, v in raw.items()}
        if self.logger:
            self.logger.info(f"Config reloaded: {sorted(diff.changed_files.keys())}")
        for listener in list(self._listeners):
            try:
                listener(previous, cfg)
            except Exception as e:  # noqa: BLE001
                if self.logger:
                    self.logger.error(f"Config reload listener failed: {e}")
        return True

    def start_watcher(self) -> None:
        cfg = self.get()
        hr = cfg.app.hot_reload or {}
        wcfg = WatcherConfig(
            enabled=bool(hr.get("enabled", True)),
            debounce_ms=int(hr.get("debounce_ms", 500)),
            poll_interval_ms=int(hr.get("poll_interval_ms", 500)),
        )
        self.stop_watcher()
        self._watcher = ConfigWatcher(config_dir=self.fs.config_dir, cfg=wcfg, on_change=self.reload_if_changed, logger=self.logger)
        self._watcher.start()

    def stop_watcher(self) -> None:
        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None

    # ---------- internals ----------
    def _max_backups(self) -> int:
        if self._cfg is None:
            return 10
        return int((self._cfg.app.backups or {}).get("max_backups_per_file", 10))

    def _load_raw_files(self) -> Dict[str, Dict[str, Any]]:
        out: Dict[str, Dict[str, Any]] = {}
        for name in CONFIG_FILES:
            path = os.path.join(self.fs.config_dir, name)
            if not os.path.exists(path):
                continue
            out[name] = self.read_non_sensitive(name)
        return out

    def _ensure_defaults(self, files: Dict[str, Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
        out = dict(files)
        for name, model in CONFIG_FILES.items():
            if name in out and out[name]:
                continue
            default = model().model_dump(mode="json")
            out[name] = default
            if not self.read_only:
                atomic_write_json(os.path.join(self.fs.config_dir, name), default, None)
        return out

    def _validate_all(self, files: Dict[str, Dict[str, Any]]) -> AppConfig:
        try:
            return AppConfig(
                app=AppFileConfig.model_validate(files.get("app.json") or {}),
                watch=WatchConfigFile.model_validate(files.get("watch.json") or {}),
                scheduler=SchedulerConfigFile.model_validate(files.get("scheduler.json") or {}),
                controller=ControllerConfigFile.model_validate(files.get("controller.json") or {}),
                events=EventsConfigFile.model_validate(files.get("events.json") or {}),
            )
        except ValidationError as e:
            raise ConfigurationError(f"Config invalid: {_first_error(e)}") from e


def _first_error(e: ValidationError) -> str:
    errs = e.errors()
    if not errs:
        return str(e)[:200]
    first = errs[0]
    loc = ".".join(str(x) for x in first.get("loc") or ())
    return f"{loc}: {first.get('msg')}"[:200]
