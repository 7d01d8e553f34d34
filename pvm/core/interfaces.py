"""
核心模块抽象接口定义。

定义 ConfigManager、RemoteIndex、LocalInventory、平台策略、ActivationEngine
和 VersionManager 等核心模块的抽象接口，以及模块间共享的数据结构。
"""

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional

from pvm.core.version_utils import VersionIdentifier

ProgressCallback = Callable[[int, int], None]

# 活动目录中受管理的子目录类型，顺序即创建链接的顺序
MANAGED_DIR_KINDS = ("bin", "lib", "include", "share")


class InstallState(enum.Enum):
    """安装流水线状态。"""

    NOT_INSTALLED = "not_installed"
    FETCHING = "fetching"
    EXTRACTING = "extracting"
    BUILDING = "building"
    INSTALLING = "installing"
    VERIFYING = "verifying"
    INSTALLED = "installed"
    CLEANUP = "cleanup"
    FAILED = "failed"


StateCallback = Callable[[InstallState], None]


@dataclass(frozen=True)
class InstallInfo:
    """
    某个版本的安装信息。

    路径均为绝对路径；磁盘上不存在的目录对应字段为 None。
    """

    version: VersionIdentifier
    root: Path
    executable: Optional[Path] = None
    bin_dir: Optional[Path] = None
    lib_dir: Optional[Path] = None
    include_dir: Optional[Path] = None
    share_dir: Optional[Path] = None

    def managed_dirs(self) -> Dict[str, Optional[Path]]:
        """按 MANAGED_DIR_KINDS 顺序返回各子目录。"""
        return {
            "bin": self.bin_dir,
            "lib": self.lib_dir,
            "include": self.include_dir,
            "share": self.share_dir,
        }


class IConfigManager(ABC):
    """配置管理器抽象接口。"""

    @abstractmethod
    def get_prefix(self) -> Path:
        """获取托管目录根路径。"""
        pass

    @abstractmethod
    def get_mirror(self) -> str:
        """获取镜像源 URL。"""
        pass

    @abstractmethod
    def get_versions_dir(self) -> Path:
        """获取版本安装目录的父目录。"""
        pass

    @abstractmethod
    def get_version_dir(self, version: VersionIdentifier) -> Path:
        """获取指定版本的安装目录。"""
        pass

    @abstractmethod
    def get_active_dir(self) -> Path:
        """获取活动版本链接所在目录。"""
        pass

    @abstractmethod
    def get_cache_dir(self) -> Path:
        """获取安装包缓存目录。"""
        pass

    @abstractmethod
    def get_executable_name(self) -> str:
        """获取受管理的可执行文件名。"""
        pass

    @abstractmethod
    def get_min_legal_version(self) -> VersionIdentifier:
        """获取允许的最低版本。"""
        pass

    @abstractmethod
    def get_cutover_version(self) -> VersionIdentifier:
        """获取稳定版分界版本。"""
        pass

    @abstractmethod
    def get_request_timeout(self) -> float:
        """获取网络请求超时时间。"""
        pass


class IRemoteIndex(ABC):
    """远程版本索引抽象接口。"""

    @abstractmethod
    def fetch(self) -> List[VersionIdentifier]:
        """获取远程可用版本，升序且去重。"""
        pass

    @abstractmethod
    def latest_version(self) -> VersionIdentifier:
        """获取最新版本。"""
        pass

    @abstractmethod
    def stable_version(self) -> VersionIdentifier:
        """获取最新稳定版本。"""
        pass


class ILocalInventory(ABC):
    """本地已安装版本清单抽象接口。"""

    @abstractmethod
    def list_installed(self) -> List[VersionIdentifier]:
        """扫描已安装版本。"""
        pass

    @abstractmethod
    def is_installed(self, version: VersionIdentifier) -> bool:
        """判断版本是否已安装。"""
        pass

    @abstractmethod
    def version_files(self, version: VersionIdentifier) -> InstallInfo:
        """获取已安装版本的文件信息。"""
        pass

    @abstractmethod
    def get_binary_version(self, executable: Path) -> Optional[VersionIdentifier]:
        """执行版本命令获取可执行文件的版本。"""
        pass


class IArtifactResolver(ABC):
    """安装包地址解析策略抽象接口。"""

    @abstractmethod
    def artifact_url(self, mirror_url: str, version: VersionIdentifier) -> str:
        """构建指定版本的安装包下载地址。"""
        pass

    def artifact_name(self, mirror_url: str, version: VersionIdentifier) -> str:
        """安装包文件名，即下载地址的最后一段。"""
        return self.artifact_url(mirror_url, version).rstrip("/").rsplit("/", 1)[-1]


class IInstaller(ABC):
    """安装策略抽象接口。"""

    @abstractmethod
    def install(
        self,
        artifact: Path,
        version_dir: Path,
        version: VersionIdentifier,
        on_state: Optional[StateCallback] = None,
    ) -> Path:
        """
        将安装包安装到版本目录。

        参数:
            artifact: 安装包路径
            version_dir: 已创建的空版本目录
            version: 版本标识
            on_state: 进入解压、构建、安装阶段时的通知回调

        返回:
            安装后的可执行文件路径
        """
        pass


class IActivationEngine(ABC):
    """活动版本切换抽象接口。"""

    @abstractmethod
    def activate(self, version: VersionIdentifier) -> None:
        """激活指定版本。"""
        pass

    @abstractmethod
    def deactivate(self) -> None:
        """移除当前活动版本的链接。"""
        pass


class IVersionManager(ABC):
    """版本管理器抽象接口。"""

    @abstractmethod
    def list_available(self) -> List[VersionIdentifier]:
        """获取远程可用版本。"""
        pass

    @abstractmethod
    def list_installed(self) -> List[VersionIdentifier]:
        """获取本地已安装版本。"""
        pass

    @abstractmethod
    def get_current_version(self) -> Optional[VersionIdentifier]:
        """获取当前使用的版本。"""
        pass

    @abstractmethod
    def install_version(
        self,
        raw_version: str,
        force: bool = False,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> InstallInfo:
        """下载并安装指定版本。"""
        pass

    @abstractmethod
    def uninstall_version(self, raw_version: str) -> VersionIdentifier:
        """卸载指定版本。"""
        pass

    @abstractmethod
    def resolve_and_activate(self, raw_version: Optional[str]):
        """安装（如有必要）并激活指定版本。"""
        pass

    @abstractmethod
    def deactivate(self) -> None:
        """恢复使用系统默认版本。"""
        pass
