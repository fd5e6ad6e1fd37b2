from __future__ import annotations

import os

import pytest

from watchinstall.core.config.manager import ConfigManager
from watchinstall.core.config.paths import ConfigFsPaths
from watchinstall.core.repository.fs import FsRepository

from .helpers.fakes import FakeController


@pytest.fixture
def tmp_config_root(tmp_path):
    """
    Provides an isolated root with config/ under tmp_path.
    """
    fs = ConfigFsPaths(root=str(tmp_path / "root"))
    os.makedirs(fs.config_dir, exist_ok=True)
    return fs


@pytest.fixture
def config_manager(tmp_config_root):
    cm = ConfigManager(fs=tmp_config_root, logger=None, read_only=False)
    cm.load_all()
    return cm


@pytest.fixture
def fs_repo(tmp_path):
    root = tmp_path / "repo"
    root.mkdir()
    return FsRepository(str(root))


@pytest.fixture
def controller():
    return FakeController()
