from __future__ import annotations

import json
import os
import time

from watchinstall.app import main
from watchinstall.core.engine import build_engine
from watchinstall.core.install.scope import ScopeState

from .helpers.builders import LAST_MODIFIED_A


def _wait_for(predicate, timeout: float = 2.0) -> bool:  # noqa: ANN001
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return predicate()


def test_build_engine_reconciles_with_local_controller(config_manager, fs_repo):
    fs_repo.write("/libs/foo/bar/install/dummy.cfg", b"a=b\n", mtime_ms=LAST_MODIFIED_A)
    engine = build_engine(config=config_manager, repository=fs_repo)
    try:
        report = engine.scope.activate()
        assert report.ok
        assert engine.scope.state is ScopeState.ACTIVE
        assert engine.controller.get_last_modified("/libs/foo/bar/install/dummy.cfg") == LAST_MODIFIED_A
    finally:
        engine.shutdown()

    events_path = config_manager.fs.resolve(config_manager.get().events.jsonl_path)
    assert _wait_for(lambda: os.path.exists(events_path))
    types = [json.loads(line)["event_type"] for line in open(events_path, encoding="utf-8")]
    assert "install.installed" in types


def test_config_reload_reconfigures_scope(config_manager, fs_repo, controller):
    fs_repo.write("/libs/a/install/one.cfg", b"a=b", mtime_ms=LAST_MODIFIED_A)
    fs_repo.write("/libs/b/deploy/two.cfg", b"a=b", mtime_ms=LAST_MODIFIED_A)
    engine = build_engine(config=config_manager, repository=fs_repo, controller=controller)
    try:
        engine.scope.activate()
        assert list(controller.installed) == ["/libs/a/install/one.cfg"]

        with open(config_manager.fs.watch, "w", encoding="utf-8") as f:
            json.dump({"folder_pattern": ".*/deploy$"}, f)
        assert config_manager.reload_if_changed() is True

        assert engine.scope.pattern == ".*/deploy$"
        assert list(controller.installed) == ["/libs/b/deploy/two.cfg"]
    finally:
        engine.shutdown()


def test_config_reload_ignores_unrelated_changes(config_manager, fs_repo, controller):
    engine = build_engine(config=config_manager, repository=fs_repo, controller=controller)
    try:
        engine.scope.activate()
        controller.reset_calls()
        config_manager.save_non_sensitive("scheduler.json", {"enabled": False, "interval_seconds": 1.0})
        with open(config_manager.fs.scheduler, "w", encoding="utf-8") as f:
            json.dump({"enabled": True, "interval_seconds": 3.0}, f)
        assert config_manager.reload_if_changed() is True
        assert controller.queries == []
    finally:
        engine.shutdown()


def test_cli_once_installs_and_reports(tmp_path, fs_repo, capsys):
    fs_repo.write("/libs/foo/bar/install/dummy.cfg", b"a=b\n", mtime_ms=LAST_MODIFIED_A)
    root = str(tmp_path / "work")

    rc = main(["--root", root, "--repo", fs_repo.root_dir, "--once"])

    assert rc == 0
    out = capsys.readouterr().out
    assert "uri | action | outcome | detail" in out
    assert f"/libs/foo/bar/install/dummy.cfg | install_or_update | ok | fingerprint={LAST_MODIFIED_A}" in out

    rc = main(["--root", root, "--repo", fs_repo.root_dir, "--status"])
    assert rc == 0
    assert "/libs/foo/bar/install/dummy.cfg | 1700000000000 |" in capsys.readouterr().out


def test_cli_once_reports_failures(tmp_path, fs_repo, capsys):
    fs_repo.write("/libs/foo/bar/install/broken.jar", b"not a zip", mtime_ms=LAST_MODIFIED_A)

    rc = main(["--root", str(tmp_path / "work"), "--repo", fs_repo.root_dir, "--once", "--json"])

    assert rc == 1
    report = json.loads(capsys.readouterr().out)
    assert report["ok"] is False
    assert report["failed"][0]["uri"] == "/libs/foo/bar/install/broken.jar"


def test_cli_rejects_invalid_pattern(tmp_path, fs_repo):
    rc = main(["--root", str(tmp_path / "work"), "--repo", fs_repo.root_dir, "--once", "--pattern", "(unclosed"])
    assert rc == 2


def test_cli_pattern_override_is_saved(tmp_path, fs_repo):
    fs_repo.write("/libs/b/deploy/two.cfg", b"a=b", mtime_ms=LAST_MODIFIED_A)
    root = tmp_path / "work"
    rc = main(["--root", str(root), "--repo", fs_repo.root_dir, "--once", "--pattern", ".*/deploy$"])
    assert rc == 0
    with open(root / "config" / "watch.json", "r", encoding="utf-8") as f:
        assert json.load(f)["folder_pattern"] == ".*/deploy$"


def test_default_config_watches_for_pattern_edits(config_manager, fs_repo, controller):
    assert config_manager.get().app.hot_reload["enabled"] is True
    fs_repo.write("/libs/b/deploy/two.cfg", b"a=b", mtime_ms=LAST_MODIFIED_A)
    engine = build_engine(config=config_manager, repository=fs_repo, controller=controller)
    try:
        engine.scope.activate()
        config_manager.start_watcher()

        with open(config_manager.fs.watch, "w", encoding="utf-8") as f:
            json.dump({"folder_pattern": ".*/deploy$"}, f)
        later = time.time() + 10
        os.utime(config_manager.fs.watch, (later, later))

        assert _wait_for(lambda: engine.scope.pattern == ".*/deploy$", timeout=5.0)
        assert _wait_for(lambda: "/libs/b/deploy/two.cfg" in controller.installed)
    finally:
        engine.shutdown()


def test_config_reload_applies_search_paths_with_pattern(config_manager, fs_repo, controller):
    fs_repo.write("/content/x/deploy/three.cfg", b"a=b", mtime_ms=LAST_MODIFIED_A)
    engine = build_engine(config=config_manager, repository=fs_repo, controller=controller)
    try:
        engine.scope.activate()
        assert controller.installed == {}

        with open(config_manager.fs.watch, "w", encoding="utf-8") as f:
            json.dump({"folder_pattern": ".*/deploy$", "search_paths": ["/content"]}, f)
        assert config_manager.reload_if_changed() is True

        assert engine.scope.cycle.scanner.search_paths == ["/content"]
        assert list(controller.installed) == ["/content/x/deploy/three.cfg"]
    finally:
        engine.shutdown()
