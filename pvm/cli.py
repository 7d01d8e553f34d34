"""
pvm 命令行接口模块。
"""

import argparse
import logging
import sys
from typing import List, Optional

from pvm import __version__
from pvm.errors import PvmError
from pvm.core.config_manager import ConfigManager
from pvm.core.version_manager import VersionManager
from pvm.core.version_utils import VersionIdentifier, group_versions_by_major
from pvm.utils.logger import get_logger, setup_logger

logger = get_logger()

COMMANDS = ("activate", "ls", "list", "latest", "stable", "status", "install", "use", "bin", "rm", "default", "disable")
CURRENT_MARKER = "-->"


def create_parser() -> argparse.ArgumentParser:
    """
    创建并配置命令行参数解析器。

    返回:
        配置好的 ArgumentParser 实例
    """
    parser = argparse.ArgumentParser(
        prog="p",
        description="pvm - Python 版本管理器",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例:
  p                       列出已安装的版本
  p 3.6.8                 安装（如有必要）并激活 Python 3.6.8
  p ls                    列出远程可用版本
  p ls stable             显示最新稳定版本
  p install 3.7.0         只安装不激活
  p use 3.6.8 -m venv .v  使用指定版本执行命令
  p rm 3.6.8 3.7.0        卸载版本
  p default               恢复系统默认版本
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="启用详细输出",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="命令",
        metavar="<command>",
    )

    # `p <version>` 由 main 改写为 `p activate <version>`
    activate_parser = subparsers.add_parser("activate")
    activate_parser.add_argument("version", help="要激活的版本")

    ls_parser = subparsers.add_parser(
        "ls",
        aliases=["list"],
        help="列出远程可用版本",
    )
    ls_parser.add_argument(
        "target",
        nargs="?",
        choices=["installed", "latest", "stable"],
        default=None,
        help="installed: 已安装版本；latest: 最新版本；stable: 最新稳定版本",
    )

    subparsers.add_parser(
        "latest",
        help="安装（如有必要）并激活最新版本",
    )

    subparsers.add_parser(
        "stable",
        help="安装（如有必要）并激活最新稳定版本",
    )

    subparsers.add_parser(
        "status",
        help="显示当前使用的版本",
    )

    install_parser = subparsers.add_parser(
        "install",
        help="下载并安装指定版本，但不激活",
    )
    install_parser.add_argument(
        "version",
        help="要安装的版本",
    )
    install_parser.add_argument(
        "--force",
        "-f",
        action="store_true",
        help="已安装时重新安装",
    )

    use_parser = subparsers.add_parser(
        "use",
        help="使用指定版本执行命令",
    )
    use_parser.add_argument(
        "version",
        help="使用的版本",
    )
    use_parser.add_argument(
        "args",
        nargs=argparse.REMAINDER,
        help="传给 Python 的参数",
    )

    bin_parser = subparsers.add_parser(
        "bin",
        help="显示指定版本的可执行文件路径",
    )
    bin_parser.add_argument(
        "version",
        help="已安装的版本",
    )

    rm_parser = subparsers.add_parser(
        "rm",
        help="卸载指定版本",
    )
    rm_parser.add_argument(
        "versions",
        nargs="+",
        help="要卸载的版本",
    )

    subparsers.add_parser(
        "default",
        help="恢复使用系统默认版本",
    )

    subparsers.add_parser(
        "disable",
        help="同 default",
    )

    return parser


def normalize_argv(argv: List[str]) -> List[str]:
    """
    把 `p <version>` 形式改写为 `p activate <version>`。

    参数:
        argv: 命令行参数列表

    返回:
        改写后的参数列表
    """
    for i, arg in enumerate(argv):
        if arg.startswith("-"):
            continue
        if arg not in COMMANDS:
            return argv[:i] + ["activate"] + argv[i:]
        break
    return argv


def run_cli(args: argparse.Namespace) -> int:
    """
    运行命令行接口。

    参数:
        args: 解析后的命令行参数

    返回:
        退出码（0 表示成功）
    """
    level = logging.INFO if args.verbose else logging.WARNING

    try:
        config_manager = ConfigManager()
    except PvmError as e:
        setup_logger(level=level, log_to_file=False)
        logger.error(f"配置无效: {e}")
        return 1

    setup_logger(level=level, log_dir=config_manager.get_log_dir())
    logger.debug(f"配置: {config_manager}")

    command_handlers = {
        None: handle_list_installed,
        "activate": handle_activate,
        "ls": handle_ls,
        "list": handle_ls,
        "latest": handle_latest,
        "stable": handle_stable,
        "status": handle_status,
        "install": handle_install,
        "use": handle_use,
        "bin": handle_bin,
        "rm": handle_rm,
        "default": handle_default,
        "disable": handle_default,
    }

    handler = command_handlers.get(args.command)
    if handler is None:
        print(f"未知命令: {args.command}")
        return 1

    try:
        return handler(args, _get_version_manager(config_manager))
    except PvmError as e:
        logger.debug(f"命令 {args.command} 失败", exc_info=True)
        print(f"错误: {e}", file=sys.stderr)
        return 1


def _get_version_manager(config_manager: ConfigManager) -> VersionManager:
    """
    获取版本管理器实例。

    参数:
        config_manager: 配置管理器实例

    返回:
        VersionManager 实例
    """
    return VersionManager(config_manager, logger=logger)


def _print_progress(downloaded: int, total: int) -> None:
    percent = int(downloaded / total * 100) if total > 0 else 0
    bar_len = 40
    filled = int(bar_len * percent / 100)
    bar = "=" * filled + "-" * (bar_len - filled)
    print(f"\r[{bar}] {percent}% ({downloaded}/{total} 字节)", end="", flush=True)
    if downloaded >= total:
        print()


def _format_version(version: VersionIdentifier, current: Optional[VersionIdentifier]) -> str:
    marker = CURRENT_MARKER if version == current else " " * len(CURRENT_MARKER)
    return f"{marker} {version}"


def _report_activated(version: VersionIdentifier, version_manager: VersionManager) -> None:
    print(f"已激活 Python {version}")
    if not version_manager.check_configuration():
        active_bin = version_manager.config_manager.get_active_dir() / "bin"
        print(f"注意：请将 {active_bin} 添加到 PATH 环境变量的最前面。")


def handle_list_installed(args: argparse.Namespace, version_manager: VersionManager) -> int:
    """
    列出已安装的版本，当前版本用 --> 标记。

    参数:
        args: 解析后的命令行参数
        version_manager: 版本管理器

    返回:
        退出码
    """
    versions = version_manager.list_installed()
    if not versions:
        print("未安装任何版本")
        print(f"安装目录: {version_manager.config_manager.get_versions_dir()}")
        return 0

    current = version_manager.get_current_version()
    print("已安装版本:")
    for v in versions:
        print(_format_version(v, current))
        if args.verbose:
            print(f"     路径: {version_manager.config_manager.get_version_dir(v)}")
    return 0


def handle_activate(args: argparse.Namespace, version_manager: VersionManager) -> int:
    """
    处理 `p <version>`：安装（如有必要）并激活指定版本。

    参数:
        args: 解析后的命令行参数
        version_manager: 版本管理器

    返回:
        退出码
    """
    version = version_manager.resolve_and_activate(args.version, _print_progress)
    _report_activated(version, version_manager)
    return 0


def handle_ls(args: argparse.Namespace, version_manager: VersionManager) -> int:
    """
    处理 ls 命令：列出远程可用版本，或已安装、最新、稳定版本。

    参数:
        args: 解析后的命令行参数
        version_manager: 版本管理器

    返回:
        退出码
    """
    if args.target == "installed":
        return handle_list_installed(args, version_manager)
    if args.target == "latest":
        print(version_manager.get_latest_version())
        return 0
    if args.target == "stable":
        print(version_manager.get_stable_version())
        return 0

    print("正在获取远程版本...")
    versions = version_manager.list_available()
    if not versions:
        print("未找到远程版本")
        return 0

    current = version_manager.get_current_version()
    for group in group_versions_by_major(versions):
        print(f"Python {group['major_version']}:")
        for v in group["versions"]:
            print(f"  {_format_version(v, current)}")
    return 0


def handle_latest(args: argparse.Namespace, version_manager: VersionManager) -> int:
    """处理 latest 命令。"""
    version = version_manager.activate_latest(_print_progress)
    _report_activated(version, version_manager)
    return 0


def handle_stable(args: argparse.Namespace, version_manager: VersionManager) -> int:
    """处理 stable 命令。"""
    version = version_manager.activate_stable(_print_progress)
    _report_activated(version, version_manager)
    return 0


def handle_status(args: argparse.Namespace, version_manager: VersionManager) -> int:
    """
    处理 status 命令：显示当前使用的版本及其来源。

    参数:
        args: 解析后的命令行参数
        version_manager: 版本管理器

    返回:
        退出码
    """
    current = version_manager.get_current_version()
    target = version_manager.activation.active_target()

    if current is None:
        print("当前版本: 未找到 Python")
    elif target is None:
        print(f"当前版本: {current} (系统)")
    else:
        print(f"当前版本: {current}")
        print(f"活动目录: {target}")

    version_manager.check_configuration()
    return 0


def handle_install(args: argparse.Namespace, version_manager: VersionManager) -> int:
    """
    处理 install 命令：下载并安装指定版本。

    参数:
        args: 解析后的命令行参数
        version_manager: 版本管理器

    返回:
        退出码
    """
    print(f"正在安装 Python {args.version}...")
    info = version_manager.install_version(args.version, force=args.force, progress_callback=_print_progress)
    print(f"成功安装 Python {info.version}")
    print(f"路径: {info.root}")
    return 0


def handle_use(args: argparse.Namespace, version_manager: VersionManager) -> int:
    """
    处理 use 命令：使用指定版本执行命令，不改变活动版本。

    参数:
        args: 解析后的命令行参数
        version_manager: 版本管理器

    返回:
        被执行命令的退出码
    """
    result = version_manager.run_with_version(args.version, args.args)
    print(result.output, end="")
    return result.returncode


def handle_bin(args: argparse.Namespace, version_manager: VersionManager) -> int:
    """处理 bin 命令：输出指定版本的可执行文件路径。"""
    info = version_manager.version_files(args.version)
    print(info.executable)
    return 0


def handle_rm(args: argparse.Namespace, version_manager: VersionManager) -> int:
    """
    处理 rm 命令：依次卸载一个或多个版本。

    参数:
        args: 解析后的命令行参数
        version_manager: 版本管理器

    返回:
        退出码
    """
    for raw_version in args.versions:
        version = version_manager.uninstall_version(raw_version)
        print(f"已卸载 Python {version}")
    return 0


def handle_default(args: argparse.Namespace, version_manager: VersionManager) -> int:
    """
    处理 default/disable 命令：移除活动版本，恢复系统默认版本。

    参数:
        args: 解析后的命令行参数
        version_manager: 版本管理器

    返回:
        退出码
    """
    version_manager.deactivate()
    current = version_manager.get_current_version()
    if current is None:
        print("已恢复系统默认版本（未找到系统 Python）")
    else:
        print(f"已恢复系统默认版本: Python {current}")
    return 0
