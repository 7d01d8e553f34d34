"""
pvm 应用程序主入口点。
"""

import sys
from typing import List, Optional

from pvm.cli import create_parser, normalize_argv, run_cli


def main(args: Optional[List[str]] = None) -> int:
    """
    应用程序主入口点。

    参数:
        args: 命令行参数。如果为 None，将使用 sys.argv[1:]。

    返回:
        退出码（0 表示成功，非零表示错误）。
    """
    argv = list(sys.argv[1:] if args is None else args)
    parser = create_parser()
    parsed_args = parser.parse_args(normalize_argv(argv))
    return run_cli(parsed_args)


if __name__ == "__main__":
    sys.exit(main())
