"""
版本工具模块。

提供版本号解析、排序、分组等工具函数。
"""

import re
from typing import Dict, Iterable, List, NamedTuple, Any

from pvm.errors import PvmError

IGNORE_PREFIXES = ("v", "version", "python/", "Python ")
VERSION_PATTERN = re.compile(r"^(\d+)\.(\d+)\.(\d+)$")
VERSION_SEARCH_PATTERN = re.compile(r"\d+\.\d+\.\d+")


class MalformedVersionError(PvmError):
    """版本字符串格式错误异常。"""
    pass


class VersionIdentifier(NamedTuple):
    """
    版本标识 (major, minor, patch)。

    按元组逐项数值比较，因此 1.2.3 < 1.10.0。
    """

    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def clean_version_string(raw: str) -> VersionIdentifier:
    """
    清理并解析版本字符串。

    依次去除已知前缀（每个前缀最多去除一次）和首尾空白，
    剩余部分必须严格为 X.Y.Z 格式。

    参数:
        raw: 原始版本字符串，例如 "v3.6.8"、"Python 3.6.8\\n"

    返回:
        解析后的 VersionIdentifier

    抛出:
        MalformedVersionError: 字符串不是 X.Y.Z 格式
    """
    if not isinstance(raw, str):
        raise MalformedVersionError(f"版本字符串类型无效: {raw!r}")

    vstr = raw
    for prefix in IGNORE_PREFIXES:
        if vstr.startswith(prefix):
            vstr = vstr[len(prefix):]
    vstr = vstr.strip()

    match = VERSION_PATTERN.match(vstr)
    if not match:
        raise MalformedVersionError(f"版本字符串必须为 X.Y.Z 格式: {raw.strip()!r}")

    return VersionIdentifier(*(int(part) for part in match.groups()))


def is_valid_version(raw: str) -> bool:
    """判断字符串能否解析为有效版本。"""
    try:
        clean_version_string(raw)
    except MalformedVersionError:
        return False
    return True


def find_versions(text: str) -> List[VersionIdentifier]:
    """
    从任意文本中提取所有 X.Y.Z 形式的版本号（保留重复项和出现顺序）。

    参数:
        text: 原始文本，例如镜像源的 HTML 目录页

    返回:
        版本标识列表
    """
    return [
        VersionIdentifier(*(int(part) for part in found.split(".")))
        for found in VERSION_SEARCH_PATTERN.findall(text)
    ]


def ordered_unique(versions: Iterable[VersionIdentifier]) -> List[VersionIdentifier]:
    """去重并按升序排列版本列表。"""
    return sorted(set(versions))


def sort_versions_desc(versions: Iterable[VersionIdentifier]) -> List[VersionIdentifier]:
    """
    按版本号降序排列版本列表。

    参数:
        versions: 版本标识列表

    返回:
        排序后的版本列表
    """
    return sorted(versions, reverse=True)


def group_versions_by_major(versions: Iterable[VersionIdentifier]) -> List[Dict[str, Any]]:
    """
    按主版本号分组版本列表。

    参数:
        versions: 版本标识列表

    返回:
        分组后的列表，每个分组包含 major_version 和降序排列的 versions
    """
    groups: Dict[int, Dict[str, Any]] = {}

    for v in sort_versions_desc(versions):
        if v.major not in groups:
            groups[v.major] = {
                "major_version": v.major,
                "versions": [],
            }
        groups[v.major]["versions"].append(v)

    return sorted(groups.values(), key=lambda g: g["major_version"], reverse=True)
