from __future__ import annotations

import pytest

from watchinstall.core.errors import ScanError
from watchinstall.core.install.controller import NOT_INSTALLED
from watchinstall.core.install.installed import InstalledStateView

from .helpers.fakes import FakeController


class _BrokenController(FakeController):
    def get_installed_uris(self):
        raise RuntimeError("runtime unreachable")

    def get_last_modified(self, uri):
        raise RuntimeError("runtime unreachable")


def test_fingerprint_lookup():
    view = InstalledStateView(FakeController(installed={"/libs/a/install/a.jar": 42}))
    assert view.installed_fingerprint("/libs/a/install/a.jar") == 42
    assert view.installed_fingerprint("/libs/a/install/other.jar") is None
    assert view.installed_uris() == {"/libs/a/install/a.jar"}


def test_not_installed_sentinel_maps_to_none():
    ctl = FakeController(installed={"/libs/a/install/a.jar": NOT_INSTALLED})
    assert InstalledStateView(ctl).installed_fingerprint("/libs/a/install/a.jar") is None


def test_view_is_not_cached():
    ctl = FakeController()
    view = InstalledStateView(ctl)
    assert view.installed_uris() == set()
    ctl.installed["/libs/a/install/a.jar"] = 1
    assert view.installed_uris() == {"/libs/a/install/a.jar"}
    assert view.installed_fingerprint("/libs/a/install/a.jar") == 1


def test_controller_failure_is_a_scan_error():
    view = InstalledStateView(_BrokenController())
    with pytest.raises(ScanError):
        view.installed_uris()
    with pytest.raises(ScanError) as ei:
        view.installed_fingerprint("/libs/a/install/a.jar")
    assert ei.value.context["error_type"] == "RuntimeError"
