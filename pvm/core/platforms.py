"""
平台策略模块。

按平台提供安装包地址解析（ArtifactResolver）和安装（Installer）两类策略，
启动时根据平台检测结果选择一组策略，新增平台只需注册新的策略组合。
"""

import logging
import os
import shutil
import subprocess
import tarfile
from pathlib import Path
from typing import Callable, Dict, List, NamedTuple, Optional

from pvm.errors import PvmError
from pvm.core.install_pipeline import BuildError, ExtractionError
from pvm.core.interfaces import IArtifactResolver, IInstaller, InstallState, StateCallback
from pvm.core.version_utils import VersionIdentifier
from pvm.utils.input_validator import InputValidator, InputValidationError
from pvm.utils.logger import LOGGER_NAME


class UnsupportedError(PvmError):
    """当前平台或操作尚不支持。"""
    pass


class UnixArtifactResolver(IArtifactResolver):
    """Unix 平台使用源码包 Python-X.Y.Z.tgz。"""

    def artifact_url(self, mirror_url: str, version: VersionIdentifier) -> str:
        return f"{mirror_url}{version}/Python-{version}.tgz"


class WindowsArtifactResolver(IArtifactResolver):
    """Windows 平台使用安装包 python-X.Y.Z.amd64.msi。"""

    def artifact_url(self, mirror_url: str, version: VersionIdentifier) -> str:
        return f"{mirror_url}{version}/python-{version}.amd64.msi"


class StepRunner:
    """
    外部构建命令执行器。

    捕获标准输出和标准错误的合并输出，返回码非零时抛出 BuildError。
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(LOGGER_NAME)

    def _run_step(self, step: str, args: List[str], cwd: Path) -> str:
        """
        在 cwd 中执行一个构建步骤。

        参数:
            step: 步骤名称，用于日志和错误信息
            args: 命令及参数
            cwd: 工作目录

        返回:
            合并后的命令输出
        """
        self.logger.info(f"运行 `{' '.join(args)}` (目录: {cwd})")
        try:
            result = subprocess.run(
                args,
                cwd=str(cwd),
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
            )
        except OSError as e:
            raise BuildError(step, str(e)) from e

        if result.returncode != 0:
            self.logger.debug(f"`{step}` 输出:\n{result.stdout}")
            raise BuildError(step, result.stdout, result.returncode)
        return result.stdout


class UnixSourceInstaller(StepRunner, IInstaller):
    """
    Unix 源码编译安装策略。

    解压源码包 → 重命名为 src → configure/make/make install → 创建别名链接 → 删除 src。
    """

    SRC_DIR_NAME = "src"
    ALIASES = (("python3", "python"), ("pip3", "pip"))

    def install(
        self,
        artifact: Path,
        version_dir: Path,
        version: VersionIdentifier,
        on_state: Optional[StateCallback] = None,
    ) -> Path:
        notify = on_state or (lambda state: None)

        notify(InstallState.EXTRACTING)
        src_dir = self._extract(artifact, version_dir)

        notify(InstallState.BUILDING)
        self._run_step("configure", ["./configure", f"--prefix={version_dir}"], src_dir)
        self._run_step("make", ["make"], src_dir)

        notify(InstallState.INSTALLING)
        self._run_step("make install", ["make", "install"], src_dir)

        bin_dir = version_dir / "bin"
        self._make_aliases(bin_dir)

        shutil.rmtree(src_dir)
        self.logger.debug(f"已删除构建目录 {src_dir}")
        return bin_dir / "python"

    def _extract(self, artifact: Path, version_dir: Path) -> Path:
        """
        解压源码包到版本目录并把顶层目录重命名为 src，防止路径遍历漏洞。

        参数:
            artifact: 源码包路径
            version_dir: 版本目录

        返回:
            src 目录路径
        """
        try:
            with tarfile.open(artifact, "r:*") as tf:
                members = tf.getmembers()
                top_level = set()
                for member in members:
                    InputValidator.validate_archive_member(member.name)
                    InputValidator.safe_join_path(str(version_dir), member.name)
                    top_level.add(_top_level_name(member.name))

                top_level.discard("")
                if len(top_level) != 1:
                    raise ExtractionError(f"源码包 {artifact.name} 顶层应只有一个目录，实际为: {sorted(top_level)}")

                if hasattr(tarfile, "data_filter"):
                    tf.extractall(version_dir, filter="data")
                else:
                    tf.extractall(version_dir)
        except (tarfile.TarError, InputValidationError, OSError) as e:
            raise ExtractionError(f"解压 {artifact} 失败: {e}") from e

        extracted_dir = version_dir / top_level.pop()
        if not extracted_dir.is_dir():
            raise ExtractionError(f"源码包 {artifact.name} 的顶层条目不是目录: {extracted_dir.name}")

        src_dir = version_dir / self.SRC_DIR_NAME
        if src_dir.exists():
            shutil.rmtree(src_dir)
        extracted_dir.rename(src_dir)
        self.logger.debug(f"已解压到 {src_dir}")
        return src_dir

    def _make_aliases(self, bin_dir: Path) -> None:
        """在带版本号的名称存在且别名不存在时创建 python、pip 链接。"""
        for versioned, alias in self.ALIASES:
            versioned_path = bin_dir / versioned
            alias_path = bin_dir / alias
            if versioned_path.exists() and not os.path.lexists(alias_path):
                os.symlink(versioned, alias_path)
                self.logger.info(f"创建链接 {alias_path} --> {versioned}")


class WindowsMsiInstaller(StepRunner, IInstaller):
    """
    Windows MSI 安装策略。

    使用 msiexec 管理安装（/a）把文件释放到版本目录的 bin 子目录。
    """

    def install(
        self,
        artifact: Path,
        version_dir: Path,
        version: VersionIdentifier,
        on_state: Optional[StateCallback] = None,
    ) -> Path:
        if on_state:
            on_state(InstallState.INSTALLING)
        bin_dir = version_dir / "bin"
        bin_dir.mkdir(parents=True, exist_ok=True)
        self._run_step(
            "msiexec",
            ["msiexec", "/a", str(artifact), "/qn", f"TARGETDIR={bin_dir}"],
            version_dir,
        )
        return bin_dir / "python.exe"


class PlatformStrategy(NamedTuple):
    """一个平台的策略组合。"""

    resolver: IArtifactResolver
    installer: IInstaller


PLATFORM_STRATEGIES: Dict[str, Callable[[logging.Logger], PlatformStrategy]] = {
    "Windows": lambda logger: PlatformStrategy(WindowsArtifactResolver(), WindowsMsiInstaller(logger)),
    "Linux": lambda logger: PlatformStrategy(UnixArtifactResolver(), UnixSourceInstaller(logger)),
    "Darwin": lambda logger: PlatformStrategy(UnixArtifactResolver(), UnixSourceInstaller(logger)),
}


def select_platform(system: str, logger: Optional[logging.Logger] = None) -> PlatformStrategy:
    """
    根据平台名称选择策略组合。

    未注册的 POSIX 平台按 Unix 源码编译处理。

    参数:
        system: platform.system() 的返回值
        logger: 日志记录器

    返回:
        PlatformStrategy

    抛出:
        UnsupportedError: 平台不受支持
    """
    logger = logger or logging.getLogger(LOGGER_NAME)
    factory = PLATFORM_STRATEGIES.get(system)
    if factory is None:
        if os.name != "posix":
            raise UnsupportedError(f"不支持的平台: {system or '未知'}")
        factory = PLATFORM_STRATEGIES["Linux"]
        logger.debug(f"平台 {system} 未注册，按 Unix 源码编译处理")
    return factory(logger)


def _top_level_name(member_name: str) -> str:
    name = member_name.replace("\\", "/")
    while name.startswith("./"):
        name = name[2:]
    return name.split("/", 1)[0]
