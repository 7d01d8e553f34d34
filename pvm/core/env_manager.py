"""
环境变量管理模块。

提供 PATH 环境变量的读取和查询功能。本工具不修改环境变量，
只检查活动目录是否已在 PATH 中，并在 PATH 中定位可执行文件。
"""

import os
import shutil
from pathlib import Path
from typing import List, Mapping, Optional


class EnvManager:
    """
    环境变量管理器类。

    基于进程环境变量（默认为 os.environ）的只读视图。
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        """
        初始化环境变量管理器。

        参数:
            environ: 环境变量映射，默认为 os.environ
        """
        self._environ = os.environ if environ is None else environ

    def get_env_var(self, name: str) -> Optional[str]:
        """获取环境变量值，不存在返回 None。"""
        return self._environ.get(name)

    def get_path_entries(self) -> List[str]:
        """
        获取 PATH 环境变量的所有条目。

        返回:
            PATH 条目列表（忽略空条目）
        """
        path_value = self.get_env_var("PATH") or ""
        return [entry for entry in path_value.split(os.pathsep) if entry]

    @staticmethod
    def _normalize(entry: str) -> str:
        return os.path.normcase(os.path.normpath(entry))

    def path_contains(self, entry: str) -> bool:
        """
        检查 PATH 是否包含指定条目。

        参数:
            entry: 目录路径

        返回:
            包含返回 True
        """
        target = self._normalize(entry)
        return any(self._normalize(e) == target for e in self.get_path_entries())

    def find_executable(self, name: str, exclude: Optional[Path] = None) -> Optional[Path]:
        """
        在 PATH 中查找可执行文件。

        参数:
            name: 可执行文件名
            exclude: 跳过的目录（例如活动版本的 bin 目录）

        返回:
            可执行文件路径，未找到返回 None
        """
        entries = self.get_path_entries()
        if exclude is not None:
            excluded = self._normalize(str(exclude))
            entries = [e for e in entries if self._normalize(e) != excluded]
        if not entries:
            return None
        found = shutil.which(name, path=os.pathsep.join(entries))
        return Path(found) if found else None
