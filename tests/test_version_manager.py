from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING, Any, Callable
from unittest.mock import MagicMock

import pytest
import requests

from pvm.core.env_manager import EnvManager
from pvm.core.interfaces import IInstaller
from pvm.core.local_inventory import AlreadyInstalledError, NotInstalledError
from pvm.core.platforms import PlatformStrategy, UnixArtifactResolver
from pvm.core.version_manager import VersionManager
from pvm.core.version_utils import MalformedVersionError, VersionIdentifier

if TYPE_CHECKING:
    from pathlib import Path

    from pvm.core.config_manager import ConfigManager
    from pvm.core.interfaces import StateCallback

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="fake interpreters and directory symlinks")

V368 = VersionIdentifier(3, 6, 8)
V3101 = VersionIdentifier(3, 10, 1)

LISTING = '<a href="2.7.18/">2.7.18/</a><a href="3.6.8/">3.6.8/</a><a href="3.10.1/">3.10.1/</a>'


class ScriptInstaller(IInstaller):
    def __init__(self, write_python: Callable[..., Path]) -> None:
        self.write_python = write_python
        self.installed: list[VersionIdentifier] = []

    def install(
        self,
        artifact: Path,
        version_dir: Path,
        version: VersionIdentifier,
        on_state: StateCallback | None = None,
    ) -> Path:
        self.installed.append(version)
        (version_dir / "lib").mkdir()
        return self.write_python(version_dir / "bin" / "python", str(version))


def _session(mirror: str) -> MagicMock:
    session = MagicMock(spec=requests.Session)

    def get(url: str, **kwargs: Any) -> MagicMock:
        response = MagicMock()
        if url == mirror:
            response.content = LISTING.encode()
            response.encoding = "utf-8"
        else:
            response.headers = {"content-length": "4"}
            response.iter_content.return_value = [b"data"]
        return response

    session.get.side_effect = get
    return session


@pytest.fixture
def system_bin(tmp_path: Path, fake_python: Callable[..., Path]) -> Path:
    bin_dir = tmp_path / "usr" / "bin"
    fake_python(bin_dir / "python", "3.9.1")
    return bin_dir


@pytest.fixture
def installer(fake_python: Callable[..., Path]) -> ScriptInstaller:
    return ScriptInstaller(fake_python)


@pytest.fixture
def manager_factory(
    config: ConfigManager, installer: ScriptInstaller, system_bin: Path
) -> Callable[..., VersionManager]:
    def _make(path: list[Path] | None = None) -> VersionManager:
        entries = [config.get_active_dir() / "bin", system_bin] if path is None else path
        env = EnvManager(environ={"PATH": os.pathsep.join(str(e) for e in entries)})
        return VersionManager(
            config,
            env_manager=env,
            session=_session(config.get_mirror()),
            strategy=PlatformStrategy(UnixArtifactResolver(), installer),
        )

    return _make


@pytest.fixture
def manager(manager_factory: Callable[..., VersionManager]) -> VersionManager:
    return manager_factory()


def test_resolve_and_activate_without_version_lists_installed(
    manager: VersionManager, make_install: Callable[..., Path]
) -> None:
    make_install("3.6.8")
    assert manager.resolve_and_activate(None) == [V368]
    assert manager.activation.active_links() == {}


def test_resolve_and_activate_installed(manager: VersionManager, make_install: Callable[..., Path]) -> None:
    make_install("3.6.8")

    assert manager.resolve_and_activate("v3.6.8") == V368

    manager.session.get.assert_not_called()
    assert manager.get_current_version() == V368


def test_resolve_and_activate_installs_missing(manager: VersionManager, installer: ScriptInstaller) -> None:
    assert manager.resolve_and_activate("3.10.1") == V3101

    assert installer.installed == [V3101]
    assert manager.list_installed() == [V3101]
    assert manager.get_current_version() == V3101


def test_resolve_and_activate_malformed(manager: VersionManager) -> None:
    with pytest.raises(MalformedVersionError):
        manager.resolve_and_activate("3.10")
    manager.session.get.assert_not_called()


def test_current_version_falls_back_to_path(manager: VersionManager) -> None:
    assert manager.get_current_version() == VersionIdentifier(3, 9, 1)


def test_current_version_none_without_python(manager_factory: Callable[..., VersionManager], tmp_path: Path) -> None:
    assert manager_factory(path=[tmp_path / "empty"]).get_current_version() is None


def test_install_version_does_not_activate(manager: VersionManager) -> None:
    info = manager.install_version("3.6.8")

    assert info.version == V368
    assert manager.activation.active_links() == {}


def test_install_version_already_installed(manager: VersionManager, make_install: Callable[..., Path]) -> None:
    make_install("3.6.8")
    with pytest.raises(AlreadyInstalledError):
        manager.install_version("3.6.8")


def test_force_install_of_active_version_deactivates_first(
    manager: VersionManager, make_install: Callable[..., Path], installer: ScriptInstaller
) -> None:
    make_install("3.6.8")
    manager.resolve_and_activate("3.6.8")

    manager.install_version("3.6.8", force=True)

    assert installer.installed == [V368]
    assert manager.activation.active_links() == {}
    assert manager.list_installed() == [V368]


def test_uninstall_active_version(manager: VersionManager, make_install: Callable[..., Path], config: ConfigManager) -> None:
    make_install("3.6.8")
    manager.resolve_and_activate("3.6.8")

    assert manager.uninstall_version("3.6.8") == V368

    assert manager.activation.active_links() == {}
    assert not config.get_version_dir(V368).exists()
    assert manager.get_current_version() == VersionIdentifier(3, 9, 1)


def test_uninstall_inactive_version_keeps_active(manager: VersionManager, make_install: Callable[..., Path]) -> None:
    make_install("3.6.8")
    make_install("3.10.1")
    manager.resolve_and_activate("3.10.1")

    manager.uninstall_version("3.6.8")

    assert manager.list_installed() == [V3101]
    assert manager.get_current_version() == V3101


def test_uninstall_not_installed(manager: VersionManager) -> None:
    with pytest.raises(NotInstalledError):
        manager.uninstall_version("3.6.8")


def test_activate_latest_and_stable(manager: VersionManager, make_install: Callable[..., Path]) -> None:
    make_install("3.6.8")
    make_install("3.10.1")

    assert manager.activate_latest() == V3101
    assert manager.get_current_version() == V3101

    assert manager.activate_stable() == V368
    assert manager.get_current_version() == V368


def test_deactivate_restores_system(manager: VersionManager, make_install: Callable[..., Path]) -> None:
    make_install("3.6.8")
    manager.resolve_and_activate("3.6.8")

    manager.deactivate()

    assert manager.get_current_version() == VersionIdentifier(3, 9, 1)
    assert manager.list_installed() == [V368]


def test_version_files(manager: VersionManager, make_install: Callable[..., Path]) -> None:
    root = make_install("3.6.8")
    assert manager.version_files("Python 3.6.8").executable == root / "bin" / "python"


def test_run_with_version(manager: VersionManager, make_install: Callable[..., Path]) -> None:
    make_install("3.6.8")

    result = manager.run_with_version("3.6.8", ["-c", "print(1)"])

    assert result.returncode == 0
    assert result.output == "args: -c print(1)\n"
    assert manager.activation.active_links() == {}


def test_run_with_version_exit_code(
    manager: VersionManager, make_install: Callable[..., Path], fake_python: Callable[..., Path]
) -> None:
    root = make_install("3.6.8")
    fake_python(root / "bin" / "python", "3.6.8", exit_code=3)

    assert manager.run_with_version("3.6.8", ["script.py"]).returncode == 3


def test_run_with_version_not_installed(manager: VersionManager) -> None:
    with pytest.raises(NotInstalledError):
        manager.run_with_version("3.6.8", [])


def test_check_configuration(
    manager_factory: Callable[..., VersionManager], config: ConfigManager, caplog: pytest.LogCaptureFixture
) -> None:
    assert manager_factory().check_configuration()

    caplog.set_level(logging.WARNING, logger="pvm")
    assert not manager_factory(path=[]).check_configuration()
    assert str(config.get_active_dir() / "bin") in caplog.text
