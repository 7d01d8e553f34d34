"""
版本管理器模块。

提供 Python 版本的查询、安装、激活、卸载和按版本执行功能。
"""

import logging
import shutil
import subprocess
from typing import List, NamedTuple, Optional, Sequence, Union

import requests

from pvm.errors import PvmError
from pvm.core.activation import ActivationEngine
from pvm.core.config_manager import ConfigManager
from pvm.core.env_manager import EnvManager
from pvm.core.install_pipeline import InstallPipeline
from pvm.core.interfaces import IVersionManager, InstallInfo, ProgressCallback
from pvm.core.local_inventory import LocalInventory
from pvm.core.platforms import PlatformStrategy, select_platform
from pvm.core.remote_index import RemoteIndex
from pvm.core.version_utils import VersionIdentifier, clean_version_string
from pvm.utils.logger import LOGGER_NAME


class VersionManagerError(PvmError):
    """版本管理错误异常。"""
    pass


class ExecutionError(VersionManagerError):
    """无法执行指定版本的可执行文件。"""
    pass


class RunResult(NamedTuple):
    """按指定版本执行命令的结果。"""

    returncode: int
    output: str


class VersionManager(IVersionManager):
    """
    版本管理器类。

    作为协调者，把版本解析、远程索引、本地清单、安装流水线和活动版本切换
    组合成对外的公开操作。本类不在调用之间缓存任何状态，所有状态都从文件系统重新读取。
    实现 IVersionManager 抽象接口。
    """

    def __init__(
        self,
        config_manager: Optional[ConfigManager] = None,
        env_manager: Optional[EnvManager] = None,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
        strategy: Optional[PlatformStrategy] = None,
    ):
        """
        初始化版本管理器。

        参数:
            config_manager: 配置管理器实例，默认从环境变量加载
            env_manager: 环境变量管理器实例
            session: requests 会话，远程索引和下载共用
            logger: 日志记录器
            strategy: 平台策略组合，默认按当前平台选择
        """
        self.config_manager = config_manager or ConfigManager()
        self.env_manager = env_manager or EnvManager()
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self.session = session or requests.Session()

        self.remote_index = RemoteIndex(self.config_manager, self.session, self.logger)
        self.inventory = LocalInventory(self.config_manager, self.logger)
        self.activation = ActivationEngine(self.config_manager, self.inventory, self.logger)

        strategy = strategy or select_platform(self.config_manager.get_system(), self.logger)
        self.pipeline = InstallPipeline(
            self.config_manager,
            self.inventory,
            strategy.resolver,
            strategy.installer,
            session=self.session,
            logger=self.logger,
            on_replace=self._remove_version,
        )

    def list_available(self) -> List[VersionIdentifier]:
        """获取远程可用版本（升序）。"""
        return self.remote_index.fetch()

    def list_installed(self) -> List[VersionIdentifier]:
        """获取本地已安装版本（升序）。"""
        return self.inventory.list_installed()

    def get_latest_version(self) -> VersionIdentifier:
        """获取远程最新版本。"""
        return self.remote_index.latest_version()

    def get_stable_version(self) -> VersionIdentifier:
        """获取远程最新稳定版本。"""
        return self.remote_index.stable_version()

    def get_current_version(self) -> Optional[VersionIdentifier]:
        """
        获取当前使用的版本。

        有活动版本时执行活动目录中的可执行文件，否则执行 PATH 中找到的系统版本，
        并解析其 --version 输出。

        返回:
            当前版本，找不到任何可执行文件时返回 None
        """
        executable_name = self.config_manager.get_executable_name()
        active_bin = self.config_manager.get_active_dir() / "bin"
        active_executable = active_bin / executable_name
        if active_executable.exists():
            return self.inventory.get_binary_version(active_executable)

        system_executable = self.env_manager.find_executable(executable_name, exclude=active_bin)
        if system_executable is None:
            self.logger.debug(f"PATH 中未找到 {executable_name}")
            return None
        return self.inventory.get_binary_version(system_executable)

    def is_active(self, version: VersionIdentifier) -> bool:
        """判断指定版本是否为当前活动版本。"""
        target = self.activation.active_target()
        if target is not None and target == self.config_manager.get_version_dir(version):
            return True
        return self.get_current_version() == version

    def install_version(
        self,
        raw_version: str,
        force: bool = False,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> InstallInfo:
        """
        下载并安装指定版本，但不激活。

        参数:
            raw_version: 版本字符串
            force: 已安装时是否重新安装
            progress_callback: 下载进度回调函数

        返回:
            安装后的 InstallInfo
        """
        version = clean_version_string(raw_version)
        self.logger.debug(f"指定版本: {version}")
        return self.pipeline.install(version, force=force, progress_callback=progress_callback)

    def _remove_version(self, version: VersionIdentifier) -> None:
        if self.is_active(version):
            self.logger.warning(f"版本 {version} 处于活动状态，先取消激活")
            self.activation.deactivate()

        version_dir = self.config_manager.get_version_dir(version)
        self.logger.info(f"删除 {version_dir}")
        shutil.rmtree(version_dir)

    def uninstall_version(self, raw_version: str) -> VersionIdentifier:
        """
        卸载指定版本；若为当前活动版本则先取消激活。

        抛出:
            NotInstalledError: 版本未安装
        """
        version = clean_version_string(raw_version)
        self.inventory.require_installed(version)
        self._remove_version(version)
        self.logger.info(f"已卸载 {version}")
        return version

    def _ensure_installed_and_activate(
        self,
        version: VersionIdentifier,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> VersionIdentifier:
        if not self.inventory.is_installed(version):
            self.logger.info(f"版本 {version} 未安装，开始安装")
            self.pipeline.install(version, force=False, progress_callback=progress_callback)
        self.activation.activate(version)
        return version

    def resolve_and_activate(
        self,
        raw_version: Optional[str],
        progress_callback: Optional[ProgressCallback] = None,
    ) -> Union[VersionIdentifier, List[VersionIdentifier]]:
        """
        安装（如有必要）并激活指定版本。

        参数:
            raw_version: 版本字符串；为 None 时不做任何修改，返回已安装版本列表
            progress_callback: 下载进度回调函数

        返回:
            激活的版本，或 raw_version 为 None 时的已安装版本列表
        """
        if raw_version is None:
            return self.list_installed()
        version = clean_version_string(raw_version)
        self.logger.debug(f"指定版本: {version}")
        return self._ensure_installed_and_activate(version, progress_callback)

    def activate_latest(self, progress_callback: Optional[ProgressCallback] = None) -> VersionIdentifier:
        """安装（如有必要）并激活远程最新版本。"""
        return self._ensure_installed_and_activate(self.get_latest_version(), progress_callback)

    def activate_stable(self, progress_callback: Optional[ProgressCallback] = None) -> VersionIdentifier:
        """安装（如有必要）并激活远程最新稳定版本。"""
        return self._ensure_installed_and_activate(self.get_stable_version(), progress_callback)

    def deactivate(self) -> None:
        """移除活动版本链接，恢复使用系统默认版本。"""
        self.activation.deactivate()

    def version_files(self, raw_version: str) -> InstallInfo:
        """
        获取已安装版本的文件信息。

        抛出:
            NotInstalledError: 版本未安装
        """
        return self.inventory.version_files(clean_version_string(raw_version))

    def run_with_version(self, raw_version: str, args: Sequence[str]) -> RunResult:
        """
        使用指定版本的可执行文件执行命令，不改变活动版本。

        参数:
            raw_version: 版本字符串
            args: 原样传给可执行文件的参数

        返回:
            RunResult，包含返回码和合并后的输出

        抛出:
            NotInstalledError: 版本未安装
            ExecutionError: 可执行文件无法启动
        """
        info = self.version_files(raw_version)
        cmd = [str(info.executable), *args]
        self.logger.info(f"执行: {cmd}")
        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
            )
        except OSError as e:
            raise ExecutionError(f"无法执行 {info.executable}: {e}") from e
        return RunResult(result.returncode, result.stdout)

    def check_configuration(self) -> bool:
        """
        检查活动 bin 目录是否在 PATH 中。

        返回:
            在 PATH 中返回 True，否则记录警告并返回 False
        """
        active_bin = self.config_manager.get_active_dir() / "bin"
        if self.env_manager.path_contains(str(active_bin)):
            return True
        self.logger.warning(f"bin 目录 `{active_bin}` 不在 PATH 中")
        return False
