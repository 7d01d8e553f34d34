"""
配置管理器模块。

从环境变量加载运行配置。配置在进程内只读取一次，之后不可修改。
"""

import os
import platform
from pathlib import Path
from typing import Mapping, Optional

from pvm.errors import PvmError
from pvm.core.interfaces import IConfigManager
from pvm.core.version_utils import MalformedVersionError, VersionIdentifier, clean_version_string
from pvm.utils.input_validator import InputValidator, InputValidationError


class ConfigValidationError(PvmError):
    """配置验证错误异常。"""
    pass


class ConfigManager(IConfigManager):
    """
    配置管理器类。

    负责读取并校验以下环境变量:
        P_PREFIX: 托管目录根路径，默认为用户主目录
        P_MIRROR: 版本列表和安装包的镜像源，默认为 python.org
        P_MIN_VERSION: 允许的最低版本，默认为 2.7.0
        P_CUTOVER_VERSION: 区分稳定版与新特性版的分界版本，默认为 3.7.0
        P_TIMEOUT: 网络请求超时秒数，默认为 60

    实现 IConfigManager 抽象接口。
    """

    DEFAULT_MIRROR = "https://www.python.org/ftp/python/"
    DEFAULT_MIN_VERSION = "2.7.0"
    DEFAULT_CUTOVER_VERSION = "3.7.0"
    DEFAULT_TIMEOUT = 60.0

    ROOT_PATH = Path("p")
    ACTIVE_PATH = ROOT_PATH / "versions"
    VERSIONS_PATH = ACTIVE_PATH / "python"
    CACHE_DIR_NAME = "temp"
    LOG_PATH = ROOT_PATH / "logs"

    def __init__(self, environ: Optional[Mapping[str, str]] = None, system: Optional[str] = None):
        """
        初始化配置管理器。

        参数:
            environ: 环境变量映射，默认为 os.environ
            system: 平台名称（platform.system() 的返回值），默认为当前平台
        """
        env = os.environ if environ is None else environ
        self._system = system or platform.system()

        prefix = env.get("P_PREFIX", "")
        if prefix:
            try:
                InputValidator.validate_path(prefix)
            except InputValidationError as e:
                raise ConfigValidationError(f"P_PREFIX 无效: {e}") from e
            self._prefix = Path(prefix).expanduser().absolute()
        else:
            self._prefix = Path.home()

        try:
            self._mirror = InputValidator.validate_mirror_url(env.get("P_MIRROR") or self.DEFAULT_MIRROR)
        except InputValidationError as e:
            raise ConfigValidationError(f"P_MIRROR 无效: {e}") from e

        self._min_version = self._parse_version_var(env, "P_MIN_VERSION", self.DEFAULT_MIN_VERSION)
        self._cutover_version = self._parse_version_var(env, "P_CUTOVER_VERSION", self.DEFAULT_CUTOVER_VERSION)
        self._timeout = self._parse_timeout(env.get("P_TIMEOUT", ""))

    @staticmethod
    def _parse_version_var(env: Mapping[str, str], name: str, default: str) -> VersionIdentifier:
        try:
            return clean_version_string(env.get(name) or default)
        except MalformedVersionError as e:
            raise ConfigValidationError(f"{name} 无效: {e}") from e

    def _parse_timeout(self, raw: str) -> float:
        if not raw:
            return self.DEFAULT_TIMEOUT
        try:
            timeout = float(raw)
        except ValueError as e:
            raise ConfigValidationError(f"P_TIMEOUT 必须为数字: {raw!r}") from e
        if timeout <= 0:
            raise ConfigValidationError(f"P_TIMEOUT 必须大于 0: {raw!r}")
        return timeout

    def get_prefix(self) -> Path:
        """获取托管目录根路径。"""
        return self._prefix

    def get_mirror(self) -> str:
        """获取镜像源 URL（以 "/" 结尾）。"""
        return self._mirror

    def get_versions_dir(self) -> Path:
        """获取各版本安装目录的父目录 {prefix}/p/versions/python。"""
        return self._prefix / self.VERSIONS_PATH

    def get_version_dir(self, version: VersionIdentifier) -> Path:
        """获取指定版本的安装目录。"""
        return self.get_versions_dir() / str(version)

    def get_active_dir(self) -> Path:
        """获取活动版本链接所在目录 {prefix}/p/versions。"""
        return self._prefix / self.ACTIVE_PATH

    def get_cache_dir(self) -> Path:
        """获取安装包缓存目录。"""
        return self.get_versions_dir() / self.CACHE_DIR_NAME

    def get_log_dir(self) -> Path:
        """获取日志目录。"""
        return self._prefix / self.LOG_PATH

    def get_system(self) -> str:
        """获取平台名称。"""
        return self._system

    def get_executable_name(self) -> str:
        """获取受管理的可执行文件名。"""
        return "python.exe" if self._system == "Windows" else "python"

    def get_min_legal_version(self) -> VersionIdentifier:
        """获取允许的最低版本。"""
        return self._min_version

    def get_cutover_version(self) -> VersionIdentifier:
        """获取稳定版分界版本。"""
        return self._cutover_version

    def get_request_timeout(self) -> float:
        """获取网络请求超时时间（秒）。"""
        return self._timeout

    def __repr__(self) -> str:
        return (
            f"ConfigManager(prefix={str(self._prefix)!r}, mirror={self._mirror!r}, "
            f"min_version={str(self._min_version)!r}, cutover={str(self._cutover_version)!r})"
        )
