from __future__ import annotations

from pathlib import Path

import pytest

from pvm.core.config_manager import ConfigManager, ConfigValidationError
from pvm.core.version_utils import VersionIdentifier


def test_defaults(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(Path, "home", lambda: tmp_path)
    config = ConfigManager(environ={}, system="Linux")

    assert config.get_prefix() == tmp_path
    assert config.get_mirror() == "https://www.python.org/ftp/python/"
    assert config.get_min_legal_version() == VersionIdentifier(2, 7, 0)
    assert config.get_cutover_version() == VersionIdentifier(3, 7, 0)
    assert config.get_request_timeout() == 60.0
    assert config.get_executable_name() == "python"


def test_layout(config: ConfigManager, prefix: Path) -> None:
    assert config.get_active_dir() == prefix / "p" / "versions"
    assert config.get_versions_dir() == prefix / "p" / "versions" / "python"
    assert config.get_version_dir(VersionIdentifier(3, 6, 8)) == prefix / "p" / "versions" / "python" / "3.6.8"
    assert config.get_cache_dir() == prefix / "p" / "versions" / "python" / "temp"
    assert config.get_log_dir() == prefix / "p" / "logs"


def test_mirror_gets_trailing_slash(prefix: Path) -> None:
    config = ConfigManager(environ={"P_PREFIX": str(prefix), "P_MIRROR": "http://localhost:8000/python"})
    assert config.get_mirror() == "http://localhost:8000/python/"


@pytest.mark.parametrize("mirror", ["ftp://mirror.example/python/", "mirror.example/python", "https://"])
def test_invalid_mirror(prefix: Path, mirror: str) -> None:
    with pytest.raises(ConfigValidationError, match="P_MIRROR"):
        ConfigManager(environ={"P_PREFIX": str(prefix), "P_MIRROR": mirror})


def test_version_overrides(prefix: Path) -> None:
    config = ConfigManager(
        environ={"P_PREFIX": str(prefix), "P_MIN_VERSION": "v3.0.0", "P_CUTOVER_VERSION": "3.12.0"},
    )
    assert config.get_min_legal_version() == VersionIdentifier(3, 0, 0)
    assert config.get_cutover_version() == VersionIdentifier(3, 12, 0)


def test_invalid_version_override(prefix: Path) -> None:
    with pytest.raises(ConfigValidationError, match="P_CUTOVER_VERSION"):
        ConfigManager(environ={"P_PREFIX": str(prefix), "P_CUTOVER_VERSION": "3.7"})


@pytest.mark.parametrize(("raw", "expected"), [("5", 5.0), ("0.5", 0.5)])
def test_timeout_override(prefix: Path, raw: str, expected: float) -> None:
    config = ConfigManager(environ={"P_PREFIX": str(prefix), "P_TIMEOUT": raw})
    assert config.get_request_timeout() == expected


@pytest.mark.parametrize("raw", ["soon", "0", "-3"])
def test_invalid_timeout(prefix: Path, raw: str) -> None:
    with pytest.raises(ConfigValidationError, match="P_TIMEOUT"):
        ConfigManager(environ={"P_PREFIX": str(prefix), "P_TIMEOUT": raw})


def test_windows_executable_name(prefix: Path) -> None:
    config = ConfigManager(environ={"P_PREFIX": str(prefix)}, system="Windows")
    assert config.get_executable_name() == "python.exe"


def test_relative_prefix_is_made_absolute(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    config = ConfigManager(environ={"P_PREFIX": "managed"})
    assert config.get_prefix() == Path.cwd() / "managed"
