"""
pvm - Python 版本管理器。

从镜像源下载、编译安装多个 Python 版本，并通过符号链接切换当前使用的版本。
"""

__version__ = "0.1.0"
