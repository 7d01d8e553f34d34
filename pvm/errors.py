"""
异常基类模块。

所有 pvm 引擎异常的公共根类，CLI 层据此统一捕获并输出错误。
"""


class PvmError(Exception):
    """pvm 错误基类。"""
    pass
