from __future__ import annotations

import re
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from watchinstall.core.events.bus import EventBusConfig
from watchinstall.core.install.classifier import DEFAULT_EXTENSIONS, DEFAULT_FOLDER_PATTERN, normalize_extensions
from watchinstall.core.repository.base import normalize_repo_path


class AppFileConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    config_version: int = Field(default=1, ge=1)
    log_dir: str = "logs"
    backups: Dict[str, Any] = Field(default_factory=lambda: {"max_backups_per_file": 10})
    hot_reload: Dict[str, Any] = Field(default_factory=lambda: {"enabled": True, "debounce_ms": 500, "poll_interval_ms": 500})


class WatchConfigFile(BaseModel):
    """
    config/watch.json: which folders are watch roots and which files in them are installable.
    """

    model_config = ConfigDict(extra="forbid")
    folder_pattern: str = DEFAULT_FOLDER_PATTERN
    search_paths: List[str] = Field(default_factory=lambda: ["/libs", "/apps"])
    extensions: List[str] = Field(default_factory=lambda: list(DEFAULT_EXTENSIONS))

    @field_validator("folder_pattern")
    @classmethod
    def _pattern_compiles(cls, v: str) -> str:
        v = str(v or "")
        if not v.strip():
            raise ValueError("folder_pattern required")
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"folder_pattern is not a valid regular expression: {e}") from e
        return v

    @field_validator("search_paths", mode="before")
    @classmethod
    def _norm_search_paths(cls, v: Any) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        out: List[str] = []
        for item in v:
            s = str(item or "").strip()
            if s:
                p = normalize_repo_path(s)
                if p not in out:
                    out.append(p)
        return out

    @field_validator("extensions", mode="before")
    @classmethod
    def _norm_extensions(cls, v: Any) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        return sorted(normalize_extensions(v))


class SchedulerConfigFile(BaseModel):
    model_config = ConfigDict(extra="forbid")
    enabled: bool = True
    interval_seconds: float = Field(default=5.0, ge=0.1, le=86_400.0)


class ControllerConfigFile(BaseModel):
    model_config = ConfigDict(extra="forbid")
    install_dir: str = "runtime/installed"
    registry_path: str = "runtime/installed.json"


class EventsConfigFile(BaseModel):
    model_config = ConfigDict(extra="forbid")
    bus: EventBusConfig = Field(default_factory=EventBusConfig)
    jsonl_enabled: bool = True
    jsonl_path: str = "logs/events/install_events.jsonl"


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    app: AppFileConfig
    watch: WatchConfigFile
    scheduler: SchedulerConfigFile
    controller: ControllerConfigFile
    events: EventsConfigFile
