from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class ConfigFsPaths:
    root: str = "."

    @property
    def config_dir(self) -> str:
        return os.path.join(self.root, "config")

    @property
    def backups_dir(self) -> str:
        return os.path.join(self.config_dir, "backups")

    @property
    def last_known_good_dir(self) -> str:
        return os.path.join(self.backups_dir, "last_known_good")

    @property
    def runtime_dir(self) -> str:
        return os.path.join(self.root, "runtime")

    # Files
    @property
    def app(self) -> str:
        return os.path.join(self.config_dir, "app.json")

    @property
    def watch(self) -> str:
        return os.path.join(self.config_dir, "watch.json")

    @property
    def scheduler(self) -> str:
        return os.path.join(self.config_dir, "scheduler.json")

    @property
    def controller(self) -> str:
        return os.path.join(self.config_dir, "controller.json")

    @property
    def events(self) -> str:
        return os.path.join(self.config_dir, "events.json")

    def resolve(self, path: str) -> str:
        """Resolve a config-relative path (e.g. "runtime/installed") against root."""
        if os.path.isabs(path):
            return path
        return os.path.join(self.root, path)
