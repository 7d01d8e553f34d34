"""
输入验证模块。

提供镜像地址、路径和压缩包成员的验证功能。
"""

import os
from typing import Optional
from urllib.parse import urlparse

from pvm.errors import PvmError


class InputValidationError(PvmError):
    """输入验证错误异常。"""
    pass


class InputValidator:
    """
    输入验证器类。

    提供用户输入和外部数据的验证功能。
    """

    MAX_PATH_LENGTH = 1024
    ALLOWED_URL_SCHEMES = ("http", "https")

    @classmethod
    def validate_mirror_url(cls, url: str) -> str:
        """
        验证镜像源 URL 并确保以 "/" 结尾。

        参数:
            url: 镜像源 URL

        返回:
            规范化后的 URL

        抛出:
            InputValidationError: URL 为空、协议不受支持或缺少主机名
        """
        if not url or not url.strip():
            raise InputValidationError("镜像源 URL 不能为空")

        url = url.strip()
        parsed = urlparse(url)
        if parsed.scheme not in cls.ALLOWED_URL_SCHEMES:
            raise InputValidationError(f"镜像源 URL 协议不受支持: {url}")
        if not parsed.netloc:
            raise InputValidationError(f"镜像源 URL 缺少主机名: {url}")

        if not url.endswith("/"):
            url += "/"
        return url

    @classmethod
    def validate_path(cls, path: Optional[str]) -> bool:
        """
        验证路径长度。

        参数:
            path: 路径字符串

        返回:
            验证通过返回 True，否则抛出 InputValidationError
        """
        if path is None:
            return True

        if len(path) > cls.MAX_PATH_LENGTH:
            raise InputValidationError(f"路径不能超过 {cls.MAX_PATH_LENGTH} 个字符")

        return True

    @classmethod
    def validate_archive_member(cls, name: str) -> None:
        """
        验证压缩包成员名称，拒绝绝对路径和上级目录引用。

        参数:
            name: 压缩包内的成员路径
        """
        normalized = name.replace("\\", "/")
        if normalized.startswith("/") or ".." in normalized.split("/"):
            raise InputValidationError(f"压缩包包含非法路径: {name}")

    @classmethod
    def safe_join_path(cls, base_path: str, *paths: str) -> str:
        """
        安全连接路径，防止路径遍历。

        参数:
            base_path: 基础路径
            *paths: 要连接的路径部分

        返回:
            安全连接后的路径

        抛出:
            InputValidationError: 如果结果路径位于 base_path 外部
        """
        base = os.path.abspath(base_path)
        joined = os.path.abspath(os.path.join(base, *paths))
        if joined != base and not joined.startswith(base + os.sep):
            raise InputValidationError(f"路径遍历检测: {joined}")
        return joined
