"""
远程版本索引模块。

提供从镜像源获取 Python 版本列表的功能。

注意: 版本号是用正则直接从镜像源的 HTML 目录页中提取的，并非结构化解析。
镜像页面布局变化可能导致结果不准确；这里只保证"提取、去重、按最低版本过滤、排序"。
"""

import logging
from typing import List, Optional

import requests

from pvm.errors import PvmError
from pvm.core.config_manager import ConfigManager
from pvm.core.interfaces import IRemoteIndex
from pvm.core.version_utils import VersionIdentifier, find_versions, ordered_unique
from pvm.utils.logger import LOGGER_NAME


class RemoteIndexError(PvmError):
    """远程索引错误异常。"""
    pass


class NetworkError(RemoteIndexError):
    """网络错误异常。"""
    pass


class ParseError(RemoteIndexError):
    """镜像源响应解析错误异常。"""
    pass


class EmptyCatalogError(RemoteIndexError):
    """镜像源没有任何可用版本。"""
    pass


class NoStableVersionError(RemoteIndexError):
    """镜像源中没有低于分界版本的稳定版本。"""
    pass


class RemoteIndex(IRemoteIndex):
    """
    远程版本索引类。

    每次调用都会重新请求镜像源，不做跨调用缓存。
    实现 IRemoteIndex 抽象接口。
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        初始化远程版本索引。

        参数:
            config_manager: 配置管理器实例
            session: requests 会话，默认新建
            logger: 日志记录器
        """
        self.config_manager = config_manager
        self.session = session or requests.Session()
        self.logger = logger or logging.getLogger(LOGGER_NAME)

    def _get_listing(self, mirror_url: str) -> str:
        """
        请求镜像源根目录页面。

        参数:
            mirror_url: 镜像源 URL

        返回:
            响应正文
        """
        self.logger.debug(f"获取 HTML 页面: {mirror_url}")
        try:
            response = self.session.get(mirror_url, timeout=self.config_manager.get_request_timeout())
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise NetworkError(f"无法获取镜像源 {mirror_url} 的版本列表: {e}") from e

        try:
            return response.content.decode(response.encoding or "utf-8")
        except (UnicodeDecodeError, LookupError) as e:
            raise ParseError(f"无法解码镜像源 {mirror_url} 的响应: {e}") from e

    def fetch(self) -> List[VersionIdentifier]:
        """
        获取远程可用版本。

        返回:
            升序、去重且不低于最低版本的版本列表

        抛出:
            NetworkError: 请求失败或返回非成功状态码
            ParseError: 响应无法解码
        """
        mirror_url = self.config_manager.get_mirror()
        content = self._get_listing(mirror_url)

        matches = find_versions(content)
        min_version = self.config_manager.get_min_legal_version()
        versions = [v for v in ordered_unique(matches) if v >= min_version]

        self.logger.info(
            f"从镜像源 {mirror_url} 提取到 {len(matches)} 个版本号，"
            f"去重并过滤后剩余 {len(versions)} 个"
        )
        return versions

    def latest_version(self) -> VersionIdentifier:
        """
        获取最新版本。

        抛出:
            EmptyCatalogError: 镜像源没有可用版本
        """
        versions = self.fetch()
        if not versions:
            raise EmptyCatalogError(f"镜像源 {self.config_manager.get_mirror()} 没有可用版本")
        return versions[-1]

    def stable_version(self) -> VersionIdentifier:
        """
        获取最新稳定版本。

        从最高版本向下查找，跳过所有不低于分界版本的条目，返回第一个低于分界版本的版本。

        抛出:
            NoStableVersionError: 所有版本都不低于分界版本，或版本列表为空
        """
        return select_stable(self.fetch(), self.config_manager.get_cutover_version())


def select_stable(versions: List[VersionIdentifier], cutover: VersionIdentifier) -> VersionIdentifier:
    """
    在升序版本列表中选出低于分界版本的最高版本。

    参数:
        versions: 升序排列的版本列表
        cutover: 分界版本

    返回:
        稳定版本
    """
    for version in reversed(versions):
        if version < cutover:
            return version
    raise NoStableVersionError(f"没有低于 {cutover} 的稳定版本")
