from __future__ import annotations

import json
import os

from watchinstall.core.config.watcher import ConfigWatcher, WatcherConfig


def _touch(path: str, obj, mtime: float) -> None:  # noqa: ANN001
    with open(path, "w", encoding="utf-8") as f:
        json.dump(obj, f)
    os.utime(path, (mtime, mtime))


def test_poll_once_detects_changes(tmp_path):
    cfg_dir = tmp_path / "config"
    cfg_dir.mkdir()
    path = str(cfg_dir / "watch.json")
    _touch(path, {}, 1_000.0)
    fired = []
    w = ConfigWatcher(config_dir=str(cfg_dir), cfg=WatcherConfig(enabled=True, debounce_ms=0), on_change=lambda: fired.append(1))
    w._last_mtimes = w._snapshot()

    assert w.poll_once() is False
    _touch(path, {"folder_pattern": ".*/x$"}, 2_000.0)
    assert w.poll_once() is True
    assert w.poll_once() is False
    assert fired == [1]


def test_debounce_suppresses_bursts(tmp_path):
    cfg_dir = tmp_path / "config"
    cfg_dir.mkdir()
    path = str(cfg_dir / "watch.json")
    _touch(path, {}, 1_000.0)
    fired = []
    w = ConfigWatcher(config_dir=str(cfg_dir), cfg=WatcherConfig(enabled=True, debounce_ms=60_000), on_change=lambda: fired.append(1))
    w._last_mtimes = w._snapshot()

    _touch(path, {"a": 1}, 2_000.0)
    assert w.poll_once() is True
    _touch(path, {"a": 2}, 3_000.0)
    assert w.poll_once() is False
    assert fired == [1]


def test_disabled_watcher_never_starts(tmp_path):
    w = ConfigWatcher(config_dir=str(tmp_path), cfg=WatcherConfig(enabled=False), on_change=lambda: None)
    w.start()
    assert not w._thread.is_alive()
    w.stop()


def test_ignores_non_json_files(tmp_path):
    (tmp_path / "notes.txt").write_text("x", encoding="utf-8")
    w = ConfigWatcher(config_dir=str(tmp_path), cfg=WatcherConfig(enabled=True), on_change=lambda: None)
    assert w._snapshot() == {}
