"""
活动版本切换模块。

通过符号链接把某个已安装版本的 bin/lib/include/share 暴露到固定的活动目录，
同一时间最多只有一个版本处于活动状态。
"""

import logging
import os
import shutil
from pathlib import Path
from typing import Dict, Optional

from pvm.errors import PvmError
from pvm.core.config_manager import ConfigManager
from pvm.core.interfaces import MANAGED_DIR_KINDS, IActivationEngine
from pvm.core.local_inventory import LocalInventory
from pvm.core.version_utils import VersionIdentifier
from pvm.utils.logger import LOGGER_NAME


class ActivationError(PvmError):
    """激活错误异常。"""
    pass


class ActivationEngine(IActivationEngine):
    """
    活动版本切换类。

    激活前总是先完整移除上一组链接，不会出现新旧版本混合的情况。
    实现 IActivationEngine 抽象接口。
    """

    def __init__(self, config_manager: ConfigManager, inventory: LocalInventory, logger: Optional[logging.Logger] = None):
        """
        初始化活动版本切换器。

        参数:
            config_manager: 配置管理器实例
            inventory: 本地版本清单
            logger: 日志记录器
        """
        self.config_manager = config_manager
        self.inventory = inventory
        self.logger = logger or logging.getLogger(LOGGER_NAME)

    def active_paths(self) -> Dict[str, Path]:
        """返回各类型活动链接的固定路径（不论是否存在）。"""
        active_dir = self.config_manager.get_active_dir()
        return {kind: active_dir / kind for kind in MANAGED_DIR_KINDS}

    def active_links(self) -> Dict[str, Path]:
        """返回当前实际存在的活动路径（包括悬空链接）。"""
        return {kind: path for kind, path in self.active_paths().items() if os.path.lexists(path)}

    def active_target(self) -> Optional[Path]:
        """
        获取活动 bin 链接所指向的版本目录。

        返回:
            版本目录路径；没有活动链接或 bin 不是链接时返回 None
        """
        bin_link = self.active_paths()["bin"]
        if not bin_link.is_symlink():
            return None
        return Path(os.readlink(bin_link)).parent

    def activate(self, version: VersionIdentifier) -> None:
        """
        激活指定版本。

        版本缺少的可选子目录（如 include、share）不会创建链接。
        若中途创建链接失败，已创建的链接会被移除。

        参数:
            version: 版本标识

        抛出:
            NotInstalledError: 版本未安装
            ActivationError: 创建链接失败
        """
        self.inventory.require_installed(version)
        self.deactivate()

        info = self.inventory.describe(version)
        sources = info.managed_dirs()
        targets = self.active_paths()
        self.config_manager.get_active_dir().mkdir(parents=True, exist_ok=True)

        created = []
        try:
            for kind in MANAGED_DIR_KINDS:
                source = sources[kind]
                if source is None:
                    self.logger.debug(f"版本 {version} 没有 {kind} 目录，跳过")
                    continue
                os.symlink(source, targets[kind], target_is_directory=True)
                created.append(targets[kind])
                self.logger.info(f"创建链接 {source} --> {targets[kind]}")
        except OSError as e:
            for link in created:
                link.unlink()
            raise ActivationError(f"激活版本 {version} 失败: {e}") from e

        self.logger.info(f"已激活版本 {version}")

    def deactivate(self) -> None:
        """
        移除当前活动版本的链接。

        没有活动版本时不做任何操作。链接直接删除，实体目录递归删除。
        """
        for kind, path in self.active_links().items():
            if path.is_symlink() or not path.is_dir():
                path.unlink()
            else:
                shutil.rmtree(path)
            self.logger.info(f"已移除 {path}")
