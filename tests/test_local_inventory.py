from __future__ import annotations

import subprocess
import sys
from typing import TYPE_CHECKING, Callable

import pytest

from pvm.core.local_inventory import LocalInventory, NotInstalledError
from pvm.core.version_utils import VersionIdentifier

if TYPE_CHECKING:
    from pathlib import Path

    from pytest_mock import MockerFixture

    from pvm.core.config_manager import ConfigManager

IS_WIN = sys.platform == "win32"


def test_missing_versions_dir_is_empty(config: ConfigManager) -> None:
    assert LocalInventory(config).list_installed() == []


def test_list_installed_skips_non_versions(config: ConfigManager, make_install: Callable[..., Path]) -> None:
    make_install("3.10.1")
    make_install("2.7.18")
    make_install("3.6.8")
    make_install("3.x", kinds=("bin",))
    make_install("3.7.0", kinds=("lib",))
    (config.get_cache_dir()).mkdir(parents=True)
    (config.get_versions_dir() / "3.9.1").write_text("not a directory")

    installed = LocalInventory(config).list_installed()

    assert installed == [VersionIdentifier(2, 7, 18), VersionIdentifier(3, 6, 8), VersionIdentifier(3, 10, 1)]


@pytest.mark.parametrize("name", ["v3.6.8", "3.6.08", "Python 3.6.8", " 3.6.8"])
def test_list_installed_skips_non_canonical_names(
    config: ConfigManager, make_install: Callable[..., Path], name: str
) -> None:
    make_install(name, reports="3.6.8")
    make_install("3.7.0")

    inventory = LocalInventory(config)

    assert inventory.list_installed() == [VersionIdentifier(3, 7, 0)]
    assert not inventory.is_installed(VersionIdentifier(3, 6, 8))


def test_is_installed_rescans(config: ConfigManager, make_install: Callable[..., Path]) -> None:
    inventory = LocalInventory(config)
    assert not inventory.is_installed(VersionIdentifier(3, 6, 8))

    make_install("3.6.8")

    assert inventory.is_installed(VersionIdentifier(3, 6, 8))


def test_version_files(config: ConfigManager, make_install: Callable[..., Path]) -> None:
    root = make_install("3.6.8", kinds=("bin", "lib"))

    info = LocalInventory(config).version_files(VersionIdentifier(3, 6, 8))

    assert info.root == root
    assert info.executable == root / "bin" / "python"
    assert info.bin_dir == root / "bin"
    assert info.lib_dir == root / "lib"
    assert info.include_dir is None
    assert info.share_dir is None


def test_version_files_not_installed(config: ConfigManager) -> None:
    with pytest.raises(NotInstalledError):
        LocalInventory(config).version_files(VersionIdentifier(3, 6, 8))


@pytest.mark.skipif(IS_WIN, reason="fake interpreter is a shell script")
def test_get_binary_version(config: ConfigManager, fake_python: Callable[..., Path], tmp_path: Path) -> None:
    exe = fake_python(tmp_path / "python", "3.6.8")
    assert LocalInventory(config).get_binary_version(exe) == VersionIdentifier(3, 6, 8)


@pytest.mark.skipif(IS_WIN, reason="fake interpreter is a shell script")
def test_get_binary_version_unparseable(config: ConfigManager, fake_python: Callable[..., Path], tmp_path: Path) -> None:
    exe = fake_python(tmp_path / "python", "3.7.0b1")
    assert LocalInventory(config).get_binary_version(exe) is None


def test_get_binary_version_missing_executable(config: ConfigManager, tmp_path: Path) -> None:
    assert LocalInventory(config).get_binary_version(tmp_path / "missing") is None


def test_get_binary_version_nonzero_exit(config: ConfigManager, mocker: MockerFixture, tmp_path: Path) -> None:
    mocker.patch(
        "pvm.core.local_inventory.subprocess.run",
        return_value=subprocess.CompletedProcess(args=[], returncode=2, stdout="Python 3.6.8\n"),
    )
    assert LocalInventory(config).get_binary_version(tmp_path / "python") is None


def test_get_binary_version_timeout(config: ConfigManager, mocker: MockerFixture, tmp_path: Path) -> None:
    mocker.patch(
        "pvm.core.local_inventory.subprocess.run",
        side_effect=subprocess.TimeoutExpired(cmd="python --version", timeout=30),
    )
    assert LocalInventory(config).get_binary_version(tmp_path / "python") is None


def test_get_binary_version_reads_first_non_empty_line(config: ConfigManager, mocker: MockerFixture, tmp_path: Path) -> None:
    mocker.patch(
        "pvm.core.local_inventory.subprocess.run",
        return_value=subprocess.CompletedProcess(args=[], returncode=0, stdout="\nPython 2.7.18\n"),
    )
    assert LocalInventory(config).get_binary_version(tmp_path / "python") == VersionIdentifier(2, 7, 18)
