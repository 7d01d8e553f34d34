"""
本地版本清单模块。

提供本地已安装版本的扫描、验证和文件定位功能。
文件系统即唯一数据来源，每次查询都重新扫描目录，不维护任何索引。
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import List, Optional

from pvm.errors import PvmError
from pvm.core.config_manager import ConfigManager
from pvm.core.interfaces import ILocalInventory, InstallInfo
from pvm.core.version_utils import MalformedVersionError, VersionIdentifier, clean_version_string
from pvm.utils.logger import LOGGER_NAME

VERSION_CMD_TIMEOUT = 30


class LocalInventoryError(PvmError):
    """本地清单错误异常。"""
    pass


class NotInstalledError(LocalInventoryError):
    """版本未安装错误异常。"""
    pass


class AlreadyInstalledError(LocalInventoryError):
    """版本已安装错误异常。"""
    pass


class LocalInventory(ILocalInventory):
    """
    本地版本清单类。

    一个子目录只有在名称能解析为 X.Y.Z 且包含 bin/<可执行文件> 时才被视为已安装，
    其余目录（如缓存目录 temp、构建残留）一律静默跳过。
    实现 ILocalInventory 抽象接口。
    """

    def __init__(self, config_manager: ConfigManager, logger: Optional[logging.Logger] = None):
        """
        初始化本地版本清单。

        参数:
            config_manager: 配置管理器实例
            logger: 日志记录器
        """
        self.config_manager = config_manager
        self.logger = logger or logging.getLogger(LOGGER_NAME)

    def list_installed(self) -> List[VersionIdentifier]:
        """
        扫描本地已安装的版本。

        返回:
            升序排列的版本列表；版本目录不存在时返回空列表
        """
        versions_dir = self.config_manager.get_versions_dir()
        self.logger.debug(f"开始扫描本地版本，根目录: {versions_dir}")
        if not versions_dir.is_dir():
            self.logger.debug(f"版本目录不存在: {versions_dir}")
            return []

        executable_name = self.config_manager.get_executable_name()
        versions = []
        for item in sorted(os.listdir(versions_dir)):
            item_path = versions_dir / item
            if not item_path.is_dir():
                continue
            try:
                version = clean_version_string(item)
            except MalformedVersionError:
                self.logger.debug(f"目录名称不是有效版本，跳过: {item}")
                continue
            if item != str(version):
                self.logger.debug(f"目录名称不是规范版本号 {version}，跳过: {item}")
                continue
            if not (item_path / "bin" / executable_name).exists():
                self.logger.debug(f"目录 {item} 中没有 bin/{executable_name}，跳过")
                continue
            versions.append(version)

        versions.sort()
        self.logger.debug(f"找到 {len(versions)} 个本地版本")
        return versions

    def is_installed(self, version: VersionIdentifier) -> bool:
        """判断版本是否已安装（每次重新扫描）。"""
        return version in self.list_installed()

    def require_installed(self, version: VersionIdentifier) -> None:
        """
        确认版本已安装。

        抛出:
            NotInstalledError: 版本未安装
        """
        if not self.is_installed(version):
            raise NotInstalledError(f"版本 {version} 未安装")

    def version_dir(self, version: VersionIdentifier) -> Path:
        """获取版本安装目录（不检查是否存在）。"""
        return self.config_manager.get_version_dir(version)

    def describe(self, version: VersionIdentifier) -> InstallInfo:
        """
        收集版本目录下实际存在的子目录和可执行文件。

        参数:
            version: 版本标识

        返回:
            InstallInfo，不存在的条目为 None
        """
        root = self.version_dir(version)

        def existing(path: Path) -> Optional[Path]:
            return path if path.exists() else None

        bin_dir = existing(root / "bin")
        executable = None
        if bin_dir is not None:
            executable = existing(bin_dir / self.config_manager.get_executable_name())

        return InstallInfo(
            version=version,
            root=root,
            executable=executable,
            bin_dir=bin_dir,
            lib_dir=existing(root / "lib"),
            include_dir=existing(root / "include"),
            share_dir=existing(root / "share"),
        )

    def version_files(self, version: VersionIdentifier) -> InstallInfo:
        """
        获取已安装版本的文件信息。

        抛出:
            NotInstalledError: 版本未安装
        """
        self.require_installed(version)
        return self.describe(version)

    def get_binary_version(self, executable: Path) -> Optional[VersionIdentifier]:
        """
        通过执行 "<executable> --version" 获取版本。

        参数:
            executable: 可执行文件路径

        返回:
            版本标识，获取失败返回 None
        """
        self.logger.debug(f"执行命令获取版本: {executable} --version")
        try:
            result = subprocess.run(
                [str(executable), "--version"],
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=VERSION_CMD_TIMEOUT,
            )
        except subprocess.TimeoutExpired:
            self.logger.warning(f"获取 {executable} 版本超时 ({VERSION_CMD_TIMEOUT}秒)")
            return None
        except OSError as e:
            self.logger.debug(f"无法执行 {executable}: {e}")
            return None

        if result.returncode != 0:
            self.logger.debug(f"{executable} --version 返回码 {result.returncode}: {result.stdout.strip()}")
            return None

        # Python 2 把版本信息写到 stderr，这里读取的是合并后的输出
        for line in result.stdout.splitlines():
            if line.strip():
                try:
                    return clean_version_string(line)
                except MalformedVersionError:
                    self.logger.debug(f"无法从输出中解析版本: {line.strip()!r}")
                    return None
        return None
