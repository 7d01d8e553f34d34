"""
pvm 核心模块。

提供版本解析、远程索引、本地清单、安装流水线、活动版本切换和版本管理功能。
"""

from .interfaces import (
    IConfigManager, IRemoteIndex, ILocalInventory, IArtifactResolver, IInstaller,
    IActivationEngine, IVersionManager, InstallInfo, InstallState,
)
from .config_manager import ConfigManager, ConfigValidationError
from .env_manager import EnvManager
from .version_utils import VersionIdentifier, MalformedVersionError, clean_version_string
from .remote_index import RemoteIndex, RemoteIndexError, NetworkError, ParseError, EmptyCatalogError, NoStableVersionError
from .local_inventory import LocalInventory, LocalInventoryError, NotInstalledError, AlreadyInstalledError
from .install_pipeline import InstallPipeline, InstallPipelineError, ExtractionError, BuildError, VerificationError
from .platforms import PlatformStrategy, UnsupportedError, select_platform
from .activation import ActivationEngine, ActivationError
from .version_manager import VersionManager, VersionManagerError, ExecutionError, RunResult
from . import version_utils

__all__ = [
    "IConfigManager", "IRemoteIndex", "ILocalInventory", "IArtifactResolver", "IInstaller",
    "IActivationEngine", "IVersionManager", "InstallInfo", "InstallState",
    "ConfigManager", "ConfigValidationError",
    "EnvManager",
    "VersionIdentifier", "MalformedVersionError", "clean_version_string",
    "RemoteIndex", "RemoteIndexError", "NetworkError", "ParseError", "EmptyCatalogError", "NoStableVersionError",
    "LocalInventory", "LocalInventoryError", "NotInstalledError", "AlreadyInstalledError",
    "InstallPipeline", "InstallPipelineError", "ExtractionError", "BuildError", "VerificationError",
    "PlatformStrategy", "UnsupportedError", "select_platform",
    "ActivationEngine", "ActivationError",
    "VersionManager", "VersionManagerError", "ExecutionError", "RunResult",
    "version_utils",
]
