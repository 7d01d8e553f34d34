from __future__ import annotations

import logging
import stat
import sys
from typing import TYPE_CHECKING, Callable

import pytest

from pvm.core.config_manager import ConfigManager
from pvm.utils.logger import LOGGER_NAME

if TYPE_CHECKING:
    from collections.abc import Generator
    from pathlib import Path

IS_WIN = sys.platform == "win32"

MIRROR = "https://mirror.example/python/"

FAKE_PYTHON = """#!/bin/sh
if [ "$1" = "--version" ]; then
    echo "Python {version}"
    exit 0
fi
echo "args: $*"
exit {exit_code}
"""


def write_fake_python(path: Path, version: str, exit_code: int = 0) -> Path:
    """Shell script that answers ``--version`` like an interpreter and echoes other arguments."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(FAKE_PYTHON.format(version=version, exit_code=exit_code))
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture(autouse=True)
def _reset_pvm_logger() -> Generator[None]:
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def prefix(tmp_path: Path) -> Path:
    return tmp_path / "prefix"


@pytest.fixture
def environ(prefix: Path) -> dict[str, str]:
    return {"P_PREFIX": str(prefix), "P_MIRROR": MIRROR}


@pytest.fixture
def config(environ: dict[str, str]) -> ConfigManager:
    return ConfigManager(environ=environ, system="Linux")


@pytest.fixture
def fake_python() -> Callable[..., Path]:
    return write_fake_python


@pytest.fixture
def make_install(config: ConfigManager) -> Callable[..., Path]:
    """Create ``{versions}/<name>`` with the given sub directories and a fake ``bin/python``."""

    def _make(name: str, kinds: tuple[str, ...] = ("bin", "lib", "include", "share"), reports: str | None = None) -> Path:
        version_dir = config.get_versions_dir() / name
        for kind in kinds:
            (version_dir / kind).mkdir(parents=True, exist_ok=True)
        if "bin" in kinds:
            write_fake_python(version_dir / "bin" / "python", reports or name)
        return version_dir

    return _make
