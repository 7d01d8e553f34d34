"""
安装流水线模块。

提供版本安装包的下载、解压、编译安装和校验功能。

状态流转:
    NOT_INSTALLED → FETCHING → EXTRACTING → BUILDING → INSTALLING → VERIFYING → INSTALLED
版本目录创建之后的任何失败都会先删除该目录（CLEANUP），再原样抛出原始异常（FAILED）。
"""

import logging
import shutil
from pathlib import Path
from typing import Callable, Optional

import requests

from pvm.errors import PvmError
from pvm.core.config_manager import ConfigManager
from pvm.core.interfaces import IArtifactResolver, IInstaller, InstallInfo, InstallState, ProgressCallback
from pvm.core.local_inventory import AlreadyInstalledError, LocalInventory
from pvm.core.remote_index import NetworkError
from pvm.core.version_utils import VersionIdentifier
from pvm.utils.logger import LOGGER_NAME

CHUNK_SIZE = 64 * 1024


class InstallPipelineError(PvmError):
    """安装流水线错误异常。"""
    pass


class ExtractionError(InstallPipelineError):
    """解压错误异常。"""
    pass


class BuildError(InstallPipelineError):
    """
    构建步骤失败异常。

    属性:
        step: 失败的步骤名称
        output: 捕获到的合并输出
        returncode: 进程返回码，无法启动进程时为 None
    """

    def __init__(self, step: str, output: str, returncode: Optional[int] = None):
        self.step = step
        self.output = output
        self.returncode = returncode
        if returncode is None:
            message = f"构建步骤 `{step}` 无法执行: {output}"
        else:
            message = f"构建步骤 `{step}` 失败，返回码 {returncode}"
        super().__init__(message)


class VerificationError(InstallPipelineError):
    """安装后版本校验失败异常。"""
    pass


class InstallPipeline:
    """
    安装流水线类。

    负责单个版本从下载到校验的完整安装过程。平台相关的地址解析和安装
    由构造时注入的 ArtifactResolver、Installer 策略完成。
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        inventory: LocalInventory,
        resolver: IArtifactResolver,
        installer: IInstaller,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
        on_replace: Optional[Callable[[VersionIdentifier], None]] = None,
    ):
        """
        初始化安装流水线。

        参数:
            config_manager: 配置管理器实例
            inventory: 本地版本清单
            resolver: 安装包地址解析策略
            installer: 安装策略
            session: requests 会话，默认新建
            logger: 日志记录器
            on_replace: force 安装已存在版本时用于移除旧版本的回调，默认直接删除版本目录
        """
        self.config_manager = config_manager
        self.inventory = inventory
        self.resolver = resolver
        self.installer = installer
        self.session = session or requests.Session()
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self.on_replace = on_replace or self._remove_version_dir
        self.state = InstallState.NOT_INSTALLED

    def _set_state(self, state: InstallState) -> None:
        self.logger.debug(f"安装状态: {self.state.value} -> {state.value}")
        self.state = state

    def _remove_version_dir(self, version: VersionIdentifier) -> None:
        version_dir = self.config_manager.get_version_dir(version)
        self.logger.info(f"删除 {version_dir}")
        shutil.rmtree(version_dir)

    def install(
        self,
        version: VersionIdentifier,
        force: bool = False,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> InstallInfo:
        """
        下载并安装指定版本。

        参数:
            version: 版本标识
            force: 版本已安装时是否先卸载再重新安装
            progress_callback: 下载进度回调函数 (已下载字节数, 总字节数)

        返回:
            安装后的 InstallInfo

        抛出:
            AlreadyInstalledError: 版本已安装且未指定 force
            NetworkError: 下载失败
            ExtractionError: 解压失败
            BuildError: 构建步骤失败
            VerificationError: 安装结果校验失败
        """
        self.state = InstallState.NOT_INSTALLED

        if self.inventory.is_installed(version):
            if not force:
                raise AlreadyInstalledError(f"版本 {version} 已安装")
            self.logger.warning(f"版本 {version} 已安装，强制重新安装")
            self.on_replace(version)

        cache_dir = self.config_manager.get_cache_dir()
        cache_dir.mkdir(mode=0o700, parents=True, exist_ok=True)

        self._set_state(InstallState.FETCHING)
        artifact = self.fetch_artifact(version, progress_callback)
        self.logger.debug(f"安装包已保存到 {artifact}")

        version_dir = self.config_manager.get_version_dir(version)
        if version_dir.exists():
            self.logger.warning(f"发现未完成安装的残留目录，先删除: {version_dir}")
            shutil.rmtree(version_dir)

        version_dir.mkdir(parents=True)
        try:
            executable = self.installer.install(artifact, version_dir, version, self._set_state)
            self._set_state(InstallState.VERIFYING)
            self._verify(version, executable)
        except BaseException:
            self._set_state(InstallState.CLEANUP)
            self.logger.info(f"安装 {version} 失败，删除目录 {version_dir}")
            try:
                shutil.rmtree(version_dir)
            except OSError as cleanup_error:
                self.logger.error(f"删除 {version_dir} 失败: {cleanup_error}")
            self._set_state(InstallState.FAILED)
            raise

        try:
            artifact.unlink()
        except OSError as e:
            self.logger.warning(f"删除安装包 {artifact} 失败: {e}")

        self._set_state(InstallState.INSTALLED)
        self.logger.info(f"成功安装 {version}")
        return self.inventory.describe(version)

    def fetch_artifact(
        self,
        version: VersionIdentifier,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> Path:
        """
        下载安装包到缓存目录；同名文件已存在时直接复用。

        下载先写入 .part 临时文件，完成后再重命名，因此缓存中的同名文件总是完整的。

        参数:
            version: 版本标识
            progress_callback: 下载进度回调函数

        返回:
            安装包路径
        """
        mirror_url = self.config_manager.get_mirror()
        download_url = self.resolver.artifact_url(mirror_url, version)
        target = self.config_manager.get_cache_dir() / self.resolver.artifact_name(mirror_url, version)

        if target.exists():
            self.logger.info(f"安装包已存在，直接使用: {target}")
            return target

        temp_path = target.with_name(target.name + ".part")
        self.logger.info(f"正在从 {download_url} 下载 {version}")

        response = None
        try:
            response = self.session.get(
                download_url,
                stream=True,
                timeout=self.config_manager.get_request_timeout(),
            )
            response.raise_for_status()
            total_size = int(response.headers.get("content-length", 0) or 0)
            downloaded = 0
            with open(temp_path, "wb") as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
                        downloaded += len(chunk)
                        if progress_callback and total_size > 0:
                            progress_callback(downloaded, total_size)
        except requests.exceptions.RequestException as e:
            temp_path.unlink(missing_ok=True)
            raise NetworkError(f"下载 {download_url} 失败: {e}") from e
        except BaseException:
            temp_path.unlink(missing_ok=True)
            raise
        finally:
            if response is not None:
                response.close()

        temp_path.replace(target)
        self.logger.info(f"下载完成: {target}")
        return target

    def _verify(self, version: VersionIdentifier, executable: Path) -> None:
        """
        校验安装结果：可执行文件报告的版本必须与版本目录一致。

        抛出:
            VerificationError: 可执行文件缺失、无法获取版本或版本不一致
        """
        if not executable.exists():
            raise VerificationError(f"安装后未找到可执行文件: {executable}")

        actual = self.inventory.get_binary_version(executable)
        if actual is None:
            raise VerificationError(f"无法获取 {executable} 的版本")
        if actual != version:
            raise VerificationError(f"安装的版本 {actual} 与指定版本 {version} 不一致")

        if not self.inventory.is_installed(version):
            raise VerificationError(
                f"安装目录缺少 bin/{self.config_manager.get_executable_name()}: "
                f"{self.config_manager.get_version_dir(version)}"
            )
        self.logger.info(f"校验通过: {executable} 版本为 {actual}")
